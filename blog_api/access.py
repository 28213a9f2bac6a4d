"""
Access control layer.

Mutating requests pass these gates in order, and the first failure wins:

  1. authenticated?      no → 401 Unauthorized
  2. post exists?        no → 404 NotFound
  3. caller == author?   no → 403 Forbidden
  4. body matches schema? no → 400 ValidationError

Gate 1 runs as a FastAPI dependency, before any path or body parsing.
Gates 2-3 are ``AccessControl.authorize_post_mutation``; gate 4 is
``validate_body``, called by the router only once the caller is authorized.
The layer reads from the store but never mutates it.
"""
import json
import logging
from typing import Any, Optional, TypeVar

import pydantic
from fastapi import Request

from blog_api.errors import Forbidden, NotFound, Unauthorized, ValidationError, format_validation_errors
from blog_api.models import BlogPost, User
from blog_api.sessions import SessionStore
from blog_api.storage import InMemoryStore
from blog_api.telemetry import ACCESS_DENIED_TOTAL

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=pydantic.BaseModel)


class PrincipalResolver:
    """Maps a request to the user behind its session, if any."""

    def __init__(self, sessions: SessionStore, store: InMemoryStore, cookie_name: str):
        self._sessions = sessions
        self._store = store
        self._cookie_name = cookie_name

    def session_id(self, request: Request) -> Optional[str]:
        authorization = request.headers.get("authorization")
        if authorization and authorization.lower().startswith("bearer "):
            return authorization.split(" ", 1)[1].strip() or None
        return request.cookies.get(self._cookie_name)

    async def resolve(self, request: Request) -> Optional[User]:
        sid = self.session_id(request)
        if not sid:
            return None
        session = await self._sessions.get(sid)
        if not session or "user_id" not in session:
            return None
        # A session for a user the store no longer knows resolves to nobody
        return self._store.get_user(session["user_id"])


class AccessControl:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def authenticate(self, principal: Optional[User]) -> User:
        if principal is None:
            ACCESS_DENIED_TOTAL.labels(status="401").inc()
            raise Unauthorized("Unauthorized")
        return principal

    def authorize_post_mutation(self, principal: Optional[User], post_id: int, action: str = "update") -> BlogPost:
        user = self.authenticate(principal)
        post = self._store.get_blog_post(post_id)
        if post is None:
            raise NotFound("Blog post not found")
        if post.author_id != user.id:
            logger.info("User %s may not %s post %s (author %s)", user.id, action, post_id, post.author_id)
            ACCESS_DENIED_TOTAL.labels(status="403").inc()
            raise Forbidden(f"You don't have permission to {action} this post")
        return post


async def read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return {}
    try:
        return json.loads(body)
    except ValueError as exc:
        raise ValidationError("Validation error: request body is not valid JSON") from exc


def validate_body(schema: type[SchemaT], payload: Any) -> SchemaT:
    try:
        return schema.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(format_validation_errors(exc.errors())) from exc
