"""
Session store adapters.

A session record is a small JSON-able dict (``{"user_id": 3}``) stored under
an opaque session id with a time-to-live. Two backends:

  MemorySessionStore — process-local dict; expired entries are hidden from
                       get() at once and dropped by prune(), which the app
                       lifespan runs every ``session_prune_interval`` seconds
  RedisSessionStore  — SET ... EX; Redis expires keys itself
"""
import asyncio
import json
import logging
import secrets
import time
from typing import Any, Callable, Optional, Protocol

from redis.asyncio import Redis

from blog_api.telemetry import SESSIONS_PRUNED_TOTAL

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(Protocol):
    async def set(self, sid: str, data: dict[str, Any], ttl: int) -> None: ...

    async def get(self, sid: str) -> Optional[dict[str, Any]]: ...

    async def delete(self, sid: str) -> None: ...

    async def prune(self) -> int: ...


class MemorySessionStore:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._sessions: dict[str, tuple[dict[str, Any], float]] = {}

    async def set(self, sid: str, data: dict[str, Any], ttl: int) -> None:
        self._sessions[sid] = (dict(data), self._clock() + ttl)

    async def get(self, sid: str) -> Optional[dict[str, Any]]:
        entry = self._sessions.get(sid)
        if entry is None:
            return None
        data, expires_at = entry
        if expires_at <= self._clock():
            return None
        return dict(data)

    async def delete(self, sid: str) -> None:
        self._sessions.pop(sid, None)

    async def prune(self) -> int:
        now = self._clock()
        expired = [sid for sid, (_, expires_at) in self._sessions.items() if expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore:
    def __init__(self, redis: Redis, prefix: str = "sess:"):
        self._redis = redis
        self._prefix = prefix

    def _key(self, sid: str) -> str:
        return f"{self._prefix}{sid}"

    async def set(self, sid: str, data: dict[str, Any], ttl: int) -> None:
        await self._redis.set(self._key(sid), json.dumps(data), ex=ttl)

    async def get(self, sid: str) -> Optional[dict[str, Any]]:
        raw = await self._redis.get(self._key(sid))
        if raw:
            return json.loads(raw)
        return None

    async def delete(self, sid: str) -> None:
        await self._redis.delete(self._key(sid))

    async def prune(self) -> int:
        return 0


async def prune_periodically(store: SessionStore, interval: float) -> None:
    """Run ``store.prune()`` every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await store.prune()
        except Exception:
            logger.exception("Session prune failed")
            continue
        if removed:
            SESSIONS_PRUNED_TOTAL.inc(removed)
            logger.info("Pruned %d expired sessions", removed)
