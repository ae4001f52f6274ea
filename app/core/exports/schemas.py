from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ExportJobState(str, Enum):
    QUEUED = "queued"
    EXPORTING = "exporting"
    CANCELLED = "cancelled"
    COMPLETED_EMPTY = "completed_empty"
    COMPLETED = "completed"
    COMPLETED_WITH_SKIPS = "completed_with_skips"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {
        ExportJobState.CANCELLED,
        ExportJobState.COMPLETED_EMPTY,
        ExportJobState.COMPLETED,
        ExportJobState.COMPLETED_WITH_SKIPS,
        ExportJobState.FAILED,
    }
)


class ExportStartIn(BaseModel):
    resource_ids: List[UUID] = Field(..., min_length=1)
    watermark: bool = False


class ExportProgressPublic(BaseModel):
    current: int
    total: int
    current_name: str


class ExportJobStatus(BaseModel):
    """Export job as stored in the ``export:<id>`` Redis hash."""

    id: str
    state: ExportJobState = ExportJobState.QUEUED
    watermark: bool = False
    total: int = 0
    progress: Optional[ExportProgressPublic] = None
    success_count: int = 0
    skipped: List[str] = Field(default_factory=list)
    archive_storage_id: Optional[str] = None
    archive_name: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def to_redis_dict(self) -> Dict[str, str]:
        data = self.model_dump(mode="json")
        return {
            key: json.dumps(value) if isinstance(value, (dict, list)) else (
                "" if value is None else str(value)
            )
            for key, value in data.items()
        }

    @classmethod
    def from_redis_dict(cls, data: Dict[str, str]) -> "ExportJobStatus":
        parsed: Dict[str, object] = {}
        for key, raw in data.items():
            if raw == "":
                continue
            if key in ("progress", "skipped"):
                parsed[key] = json.loads(raw)
            elif key == "watermark":
                parsed[key] = raw == "True"
            else:
                parsed[key] = raw
        return cls.model_validate(parsed)


class ExportJobPublic(BaseModel):
    id: str
    state: ExportJobState
    watermark: bool
    total: int
    progress: Optional[ExportProgressPublic] = None
    success_count: int
    skipped: List[str]
    archive_name: Optional[str] = None
    archive_ready: bool = False
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_status(cls, status: ExportJobStatus) -> "ExportJobPublic":
        return cls(
            id=status.id,
            state=status.state,
            watermark=status.watermark,
            total=status.total,
            progress=status.progress,
            success_count=status.success_count,
            skipped=status.skipped,
            archive_name=status.archive_name,
            archive_ready=status.archive_storage_id is not None,
            error=status.error,
            created_at=status.created_at,
            updated_at=status.updated_at,
        )


__all__ = [
    "ExportJobState",
    "TERMINAL_STATES",
    "ExportStartIn",
    "ExportProgressPublic",
    "ExportJobStatus",
    "ExportJobPublic",
]
