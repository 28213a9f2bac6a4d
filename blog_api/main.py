"""
Community Blog API — entry point.

Startup sequence:
  1. Configure OTel tracing (OTLP export if an endpoint is set)
  2. Build the in-memory entity store
  3. Connect the session store (process memory or Redis)
  4. Start the periodic session prune task (memory backend)
  5. Expose Prometheus /metrics endpoint

All users, posts and memory-backed sessions live only as long as the process.

Run with `python -m blog_api.main` or `uvicorn blog_api.main:app`.
"""
import asyncio
import logging
from typing import Optional

from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from blog_api.access import AccessControl, PrincipalResolver
from blog_api.clients.redis_client import close_redis, init_redis
from blog_api.config import Settings, settings as default_settings
from blog_api.errors import register_error_handlers
from blog_api.routers import auth, posts, users
from blog_api.sessions import MemorySessionStore, RedisSessionStore, SessionStore, prune_periodically
from blog_api.storage import InMemoryStore
from blog_api.telemetry import instrument_app, setup_tracing

logging.basicConfig(
    level=default_settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[InMemoryStore] = None,
    sessions: Optional[SessionStore] = None,
) -> FastAPI:
    """
    Build the API around one store instance.

    ``sessions`` overrides the configured backend; when omitted and the
    backend is 'redis', the Redis connection is opened in the lifespan.
    """
    settings = settings or default_settings
    store = store or InMemoryStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage startup and shutdown of the session backend."""
        logger.info("Starting Community Blog API (env=%s)", settings.environment)

        using_redis = app.state.sessions is None
        if using_redis:
            app.state.sessions = RedisSessionStore(await init_redis(settings), settings.redis_session_prefix)
            app.state.principal_resolver = PrincipalResolver(
                app.state.sessions, store, settings.session_cookie_name
            )

        pruner = asyncio.create_task(prune_periodically(app.state.sessions, settings.session_prune_interval))
        logger.info("API ready (sessions=%s).", type(app.state.sessions).__name__)
        yield

        logger.info("Shutting down...")
        pruner.cancel()
        with suppress(asyncio.CancelledError):
            await pruner
        if using_redis:
            await close_redis()

    if sessions is None and settings.session_backend != "redis":
        sessions = MemorySessionStore()

    app = FastAPI(
        title="Community Blog API",
        description="Users, blog posts with draft/published status, and an aggregated feed.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.sessions = sessions
    app.state.access = AccessControl(store)
    app.state.principal_resolver = PrincipalResolver(sessions, store, settings.session_cookie_name)

    register_error_handlers(app)

    # ── Routers ────────────────────────────────────────────────────────────
    app.include_router(auth.router, prefix="/api", tags=["Auth"])
    app.include_router(posts.router, prefix="/api/posts", tags=["Posts"])
    app.include_router(users.router, prefix="/api/user", tags=["User"])

    # ── Prometheus metrics endpoint ────────────────────────────────────────
    app.mount("/metrics", make_asgi_app())

    # ── OTel FastAPI instrumentation ──────────────────────────────────────
    instrument_app(app)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "service": settings.service_name}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port)
