"""
Pydantic request / response schemas for the API layer.
Kept separate from the entity records to avoid coupling transport to storage.

Only these validated types are accepted by the store; raw request bodies
never reach it. JSON keys are camelCase on the wire, snake_case in Python.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from blog_api.config import settings

PostStatus = Literal["published", "draft"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ──────────────────────────── Users ───────────────────────────────────────

class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=settings.username_min_length)
    email: EmailStr
    password: str = Field(..., min_length=settings.password_min_length)
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=settings.username_min_length)
    password: str = Field(..., min_length=settings.password_min_length)


class ProfileUpdate(CamelModel):
    """Profile fields a user may change. Omitted fields are left untouched."""
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email_not_null(cls, value):
        if value is None:
            raise ValueError("email cannot be null")
        return value


class UserResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    avatar_url: Optional[str] = None


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(CamelModel):
    title: str = Field(..., min_length=settings.post_title_min_length)
    content: str = Field(..., min_length=settings.post_content_min_length)
    category: str = Field(..., min_length=1)
    status: PostStatus = "published"
    image_url: Optional[str] = None


class PostUpdate(CamelModel):
    """Partial post update: supplied fields overwrite, omitted ones are kept."""
    title: Optional[str] = Field(None, min_length=settings.post_title_min_length)
    content: Optional[str] = Field(None, min_length=settings.post_content_min_length)
    category: Optional[str] = Field(None, min_length=1)
    status: Optional[PostStatus] = None
    image_url: Optional[str] = None

    @field_validator("title", "content", "category", "status")
    @classmethod
    def _required_not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class PostResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    title: str
    content: str
    category: str
    status: PostStatus
    image_url: Optional[str]
    author_id: int
    created_at: datetime
    updated_at: Optional[datetime]
    views: int


class MessageResponse(BaseModel):
    message: str
