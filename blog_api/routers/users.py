"""
Endpoints scoped to the signed-in user:
  GET /api/user         — the caller's own profile
  GET /api/user/posts   — the caller's posts, drafts included
  PUT /api/user/profile — partial profile update

Every route is pinned to the caller's own id; there is no way to name
another user from here.
"""
import logging

from fastapi import APIRouter, Depends, Request
from opentelemetry import trace

from blog_api.access import read_json, validate_body
from blog_api.dependencies import get_store, require_principal
from blog_api.models import User
from blog_api.schemas import PostResponse, ProfileUpdate, UserResponse
from blog_api.storage import InMemoryStore

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get("", response_model=UserResponse)
async def current_user(user: User = Depends(require_principal)):
    return user


@router.get("/posts", response_model=list[PostResponse])
async def my_posts(user: User = Depends(require_principal), store: InMemoryStore = Depends(get_store)):
    return store.get_blog_posts_by_author(user.id)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    request: Request,
    user: User = Depends(require_principal),
    store: InMemoryStore = Depends(get_store),
):
    with tracer.start_as_current_span("update_profile") as span:
        span.set_attribute("user.id", user.id)
        body = validate_body(ProfileUpdate, await read_json(request))
        updated = store.update_user(user.id, body)
        logger.info("Profile updated for user %s (%s)", user.id, ", ".join(sorted(body.model_fields_set)) or "no fields")
        return updated
