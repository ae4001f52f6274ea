from __future__ import annotations

from typing import Generator

from redis import Redis
from sqlalchemy.orm import Session

from app.database.session import SessionLocal
from app.utils import blob_store as blob_store_module
from app.utils.blob_store import BlobStore
from app.utils.redis_client import get_redis


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_blob_store() -> BlobStore:
    return blob_store_module.get_blob_store()


def get_redis_client() -> Redis:
    return get_redis()


__all__ = ["get_db", "get_blob_store", "get_redis_client"]
