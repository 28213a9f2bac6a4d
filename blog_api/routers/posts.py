"""
Blog post endpoints:
  GET    /api/posts      — published posts, newest first
  GET    /api/posts/{id} — a single post (any status); counts a view
  POST   /api/posts      — create a post authored by the caller
  PUT    /api/posts/{id} — partial update, author only
  DELETE /api/posts/{id} — delete, author only
"""
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from opentelemetry import trace

from blog_api.access import AccessControl, read_json, validate_body
from blog_api.dependencies import get_access, get_store, require_principal
from blog_api.errors import NotFound
from blog_api.models import User
from blog_api.schemas import PostCreate, PostResponse, PostUpdate
from blog_api.storage import InMemoryStore
from blog_api.telemetry import POST_VIEWS_TOTAL, POSTS_CREATED_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get("", response_model=list[PostResponse])
async def list_posts(store: InMemoryStore = Depends(get_store)):
    return store.get_all_blog_posts()


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, store: InMemoryStore = Depends(get_store)):
    """Fetch one post by id, drafts included. Every fetch counts as a view."""
    post = store.get_blog_post(post_id)
    if post is None:
        raise NotFound("Blog post not found")

    store.increment_post_views(post_id)
    POST_VIEWS_TOTAL.inc()
    # Respond with the post as it stands after this view was counted
    return store.get_blog_post(post_id) or post


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    request: Request,
    user: User = Depends(require_principal),
    store: InMemoryStore = Depends(get_store),
):
    with tracer.start_as_current_span("create_post") as span:
        body = validate_body(PostCreate, await read_json(request))
        post = store.create_blog_post(body, author_id=user.id)

        span.set_attribute("post.id", post.id)
        span.set_attribute("post.author_id", post.author_id)
        POSTS_CREATED_TOTAL.labels(status=post.status).inc()
        logger.info("Post created: %s by user %s (%s)", post.id, user.id, post.status)
        return post


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    request: Request,
    user: User = Depends(require_principal),
    store: InMemoryStore = Depends(get_store),
    access: AccessControl = Depends(get_access),
):
    """
    Partial update by the post's author.

    Existence and ownership are settled before the body is even parsed, so a
    stranger sending garbage gets 403, not 400.
    """
    with tracer.start_as_current_span("update_post") as span:
        span.set_attribute("post.id", post_id)
        access.authorize_post_mutation(user, post_id, action="update")

        body = validate_body(PostUpdate, await read_json(request))
        post = store.update_blog_post(post_id, body)
        logger.info("Post updated: %s by user %s", post_id, user.id)
        return post


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    user: User = Depends(require_principal),
    store: InMemoryStore = Depends(get_store),
    access: AccessControl = Depends(get_access),
):
    with tracer.start_as_current_span("delete_post") as span:
        span.set_attribute("post.id", post_id)
        access.authorize_post_mutation(user, post_id, action="delete")

        store.delete_blog_post(post_id)
        logger.info("Post deleted: %s by user %s", post_id, user.id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
