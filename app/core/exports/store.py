"""
Redis persistence for export jobs.

Key patterns:
  export:{id}          hash with every ExportJobStatus field
  export:{id}:cancel   one-shot cancel flag read between resources
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from uuid import UUID

from loguru import logger
from redis import Redis

from app.core.config import settings
from app.core.exports.job import (
    CancellationToken,
    ExportArchive,
    ExportEmpty,
    ExportOutcome,
    ExportProgress,
)
from app.core.exports.schemas import ExportJobState, ExportJobStatus


EXPORT_PREFIX = "export:"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ExportJobStore:
    def __init__(self, redis: Redis, ttl_seconds: Optional[int] = None) -> None:
        self.redis = redis
        self.ttl = ttl_seconds or settings.export_job_ttl_seconds

    def _key(self, job_id: str) -> str:
        return f"{EXPORT_PREFIX}{job_id}"

    def _cancel_key(self, job_id: str) -> str:
        return f"{EXPORT_PREFIX}{job_id}:cancel"

    def create(self, resource_ids: Sequence[UUID], watermark: bool) -> ExportJobStatus:
        status = ExportJobStatus(
            id=uuid.uuid4().hex,
            watermark=watermark,
            total=len(resource_ids),
        )
        key = self._key(status.id)
        self.redis.hset(key, mapping=status.to_redis_dict())
        self.redis.expire(key, self.ttl)
        logger.info("Export job created", job_id=status.id, total=status.total)
        return status

    def get(self, job_id: str) -> Optional[ExportJobStatus]:
        data = self.redis.hgetall(self._key(job_id))
        if not data:
            return None
        return ExportJobStatus.from_redis_dict(data)

    def update(self, job_id: str, **fields: Any) -> Optional[ExportJobStatus]:
        key = self._key(job_id)
        if not self.redis.exists(key):
            logger.warning("Export job not found for update", job_id=job_id)
            return None

        updates = {"updated_at": _now_iso()}
        for name, value in fields.items():
            if isinstance(value, ExportJobState):
                updates[name] = value.value
            elif isinstance(value, (dict, list)):
                updates[name] = json.dumps(value)
            elif value is None:
                updates[name] = ""
            else:
                updates[name] = str(value)

        self.redis.hset(key, mapping=updates)
        return self.get(job_id)

    def report_progress(self, job_id: str, progress: ExportProgress) -> None:
        self.update(
            job_id,
            state=ExportJobState.EXPORTING,
            progress={
                "current": progress.current,
                "total": progress.total,
                "current_name": progress.current_name,
            },
        )

    def record_outcome(
        self,
        job_id: str,
        outcome: ExportOutcome,
        *,
        archive_storage_id: Optional[str] = None,
        archive_name: Optional[str] = None,
    ) -> Optional[ExportJobStatus]:
        fields: dict = {
            "state": ExportJobState(outcome.state.value),
            "progress": None,
        }
        if isinstance(outcome, ExportArchive):
            fields.update(
                success_count=outcome.success_count,
                skipped=outcome.skipped,
                archive_storage_id=archive_storage_id,
                archive_name=archive_name,
            )
        elif isinstance(outcome, ExportEmpty):
            fields.update(success_count=0, skipped=outcome.skipped)
        status = self.update(job_id, **fields)
        logger.info("Export job settled", job_id=job_id, state=outcome.state.value)
        return status

    def mark_failed(self, job_id: str, error: str) -> Optional[ExportJobStatus]:
        return self.update(
            job_id,
            state=ExportJobState.FAILED,
            progress=None,
            error=error,
        )

    def request_cancel(self, job_id: str) -> Optional[ExportJobStatus]:
        status = self.get(job_id)
        if status is None or status.is_terminal:
            return status
        self.redis.set(self._cancel_key(job_id), "1", ex=self.ttl)
        logger.info("Export cancel requested", job_id=job_id)
        return status

    def is_cancel_requested(self, job_id: str) -> bool:
        return bool(self.redis.exists(self._cancel_key(job_id)))


class RedisCancellationToken(CancellationToken):
    """Cancellation flag shared with the API process through Redis."""

    def __init__(self, store: ExportJobStore, job_id: str) -> None:
        super().__init__()
        self.store = store
        self.job_id = job_id

    def cancel(self) -> None:
        super().cancel()
        self.store.request_cancel(self.job_id)

    def is_cancelled(self) -> bool:
        if super().is_cancelled():
            return True
        if self.store.is_cancel_requested(self.job_id):
            # Once seen, stay cancelled even if the Redis key expires.
            super().cancel()
            return True
        return False


__all__ = ["EXPORT_PREFIX", "ExportJobStore", "RedisCancellationToken"]
