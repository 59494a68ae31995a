"""Redis client factory and health checks."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional, Tuple

from redis import Redis
from redis.exceptions import RedisError

from mysteryfactory.core.config import get_settings


@lru_cache(maxsize=1)
def get_client() -> Redis:
    """Shared client for job locks; decoded responses so lock tokens compare as str."""

    settings = get_settings()
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
    )


def test_connection() -> Tuple[bool, Optional[str]]:
    try:
        if not get_client().ping():
            return False, "redis_ping_failed"
        return True, None
    except (RedisError, OSError) as exc:
        return False, str(exc)
