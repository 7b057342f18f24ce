from __future__ import annotations

from redis import Redis
from redis.asyncio import Redis as AsyncRedis

from .settings import settings


def get_redis_client() -> Redis:
    return Redis.from_url(settings.redis_url, decode_responses=True)


def get_async_redis_client() -> AsyncRedis:
    return AsyncRedis.from_url(settings.redis_url, decode_responses=True)
