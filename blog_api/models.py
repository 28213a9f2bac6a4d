"""
In-memory entity records.

Collections held by the store:
  users      — registered accounts (password is an opaque hash)
  blog_posts — posts authored by users, published or draft

Records are frozen; the store swaps in a new record on every change, so a
record handed out by the store is never mutated behind the caller's back.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class User:
    id: int
    username: str
    email: str
    password: str = field(repr=False)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class BlogPost:
    id: int
    title: str
    content: str
    category: str
    author_id: int
    created_at: datetime
    status: str = "published"
    image_url: Optional[str] = None
    updated_at: Optional[datetime] = None
    views: int = 0
