"""
Authentication endpoints:
  POST /api/register — create an account and sign it in
  POST /api/login    — exchange username + password for a session
  POST /api/logout   — drop the current session

A session id is returned in the session cookie; API clients may send the
same value as ``Authorization: Bearer <sid>`` instead.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from opentelemetry import trace
from starlette.concurrency import run_in_threadpool

from blog_api.access import PrincipalResolver
from blog_api.config import Settings
from blog_api.dependencies import get_sessions, get_settings, get_store
from blog_api.errors import Conflict, Unauthorized, ValidationError
from blog_api.models import User
from blog_api.schemas import LoginRequest, MessageResponse, RegisterRequest, UserResponse
from blog_api.security import hash_password, verify_password
from blog_api.sessions import SessionStore, new_session_id
from blog_api.storage import InMemoryStore
from blog_api.telemetry import LOGIN_FAILURES_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


async def _start_session(response: Response, user: User, sessions: SessionStore, settings: Settings) -> None:
    sid = new_session_id()
    await sessions.set(sid, {"user_id": user.id}, settings.session_ttl)
    response.set_cookie(
        settings.session_cookie_name,
        sid,
        max_age=settings.session_ttl,
        httponly=True,
        samesite="lax",
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    store: InMemoryStore = Depends(get_store),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    with tracer.start_as_current_span("register"):
        if store.get_user_by_username(body.username):
            raise ValidationError("Username already exists")
        if store.get_user_by_email(str(body.email)):
            raise ValidationError("Email already exists")

        # argon2 is CPU-bound; keep it off the event loop
        password_hash = await run_in_threadpool(hash_password, body.password)
        try:
            user = store.create_user(body, password_hash)
        except Conflict as exc:
            # lost a race with a concurrent registration for the same name or email
            raise ValidationError(exc.message) from exc

        await _start_session(response, user, sessions, settings)
        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user


@router.post("/login", response_model=UserResponse)
async def login(
    body: LoginRequest,
    response: Response,
    store: InMemoryStore = Depends(get_store),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    with tracer.start_as_current_span("login"):
        user = store.get_user_by_username(body.username)
        if user is None or not await run_in_threadpool(verify_password, body.password, user.password):
            LOGIN_FAILURES_TOTAL.inc()
            raise Unauthorized("Invalid username or password")

        await _start_session(response, user, sessions, settings)
        logger.info("User %s logged in", user.id)
        return user


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    resolver: PrincipalResolver = request.app.state.principal_resolver
    sid = resolver.session_id(request)
    if sid:
        await sessions.delete(sid)
    response.delete_cookie(settings.session_cookie_name)
    return {"message": "Logged out"}
