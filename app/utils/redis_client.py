from __future__ import annotations

import socket
from typing import List, Optional

from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.config import settings


LOCAL_REDIS_URL = "redis://localhost:6379/0"

_redis_client: Optional[Redis] = None


def _candidate_urls() -> List[str]:
    urls = [settings.celery_broker_url]
    if LOCAL_REDIS_URL not in urls:
        urls.append(LOCAL_REDIS_URL)
    return urls


def _create_redis_client() -> Redis:
    """
    Connects to the broker Redis first (``redis://redis:6379/0`` under
    docker-compose) and falls back to localhost when the API runs on the host.
    """
    *preferred, last = _candidate_urls()
    for url in preferred:
        try:
            client = Redis.from_url(url, decode_responses=True)
            client.ping()
            return client
        except (RedisConnectionError, socket.gaierror):
            continue

    # No fallback left: let the connection error reach the caller.
    client = Redis.from_url(last, decode_responses=True)
    client.ping()
    return client


def get_redis() -> Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = _create_redis_client()
    return _redis_client


__all__ = ["get_redis"]
