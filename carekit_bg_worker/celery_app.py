from __future__ import annotations

import socket

from celery import Celery
from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.core.config import settings


LOCAL_BROKER_URL = "redis://localhost:6379/0"


def _choose_broker_url() -> str:
    """
    Use the configured broker (usually redis://redis:6379/0) when it answers,
    otherwise a local Redis. With neither reachable, keep the configured URL
    and let Celery connect lazily.
    """
    primary = settings.celery_broker_url

    for url in (primary, LOCAL_BROKER_URL):
        try:
            client = Redis.from_url(url, socket_connect_timeout=1)
            client.ping()
            return url
        except (RedisConnectionError, RedisTimeoutError, socket.gaierror):
            continue
    return primary


broker_url = _choose_broker_url()

celery_app = Celery(
    "carekit_bg_worker",
    broker=broker_url,
)
celery_app.conf.task_acks_late = True
celery_app.conf.worker_prefetch_multiplier = 1

celery_app.autodiscover_tasks(
    packages=["carekit_bg_worker"],
)


__all__ = ["celery_app"]
