"""
Redis client wrapper.

Responsibilities:
  • Session records — STRING (JSON) keyed by {redis_session_prefix}{sid},
                      written with EX so Redis expires them itself

Only used when session_backend == 'redis'.
"""
import logging
from typing import Optional

import redis.asyncio as aioredis

from blog_api.config import Settings

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None


async def init_redis(settings: Settings) -> aioredis.Redis:
    global _redis
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
