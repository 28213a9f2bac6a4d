"""
FastAPI dependencies.

The store, session store, principal resolver and access control live on
``app.state`` (wired by ``create_app``) and are handed to routes from here,
so nothing reaches them as module globals.
"""
from typing import Optional

from fastapi import Depends, Request

from blog_api.access import AccessControl, PrincipalResolver
from blog_api.config import Settings
from blog_api.models import User
from blog_api.sessions import SessionStore
from blog_api.storage import InMemoryStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_access(request: Request) -> AccessControl:
    return request.app.state.access


async def get_principal(request: Request) -> Optional[User]:
    resolver: PrincipalResolver = request.app.state.principal_resolver
    return await resolver.resolve(request)


async def require_principal(
    principal: Optional[User] = Depends(get_principal),
    access: AccessControl = Depends(get_access),
) -> User:
    """Rejects with 401 before the route's own parameters are looked at."""
    return access.authenticate(principal)
