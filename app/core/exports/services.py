from __future__ import annotations

from datetime import date
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exports.bundles import load_export_bundles
from app.core.exports.job import (
    BatchExportJob,
    CancellationToken,
    ExportOutcome,
    ProgressFn,
    RenderFn,
)
from app.core.exports.renderer import ImagePagesRenderer
from app.utils.blob_store import BlobStore, get_blob_store


def archive_file_name(today: Optional[date] = None) -> str:
    day = today or date.today()
    return f"{settings.export_archive_prefix}-{day.isoformat()}.zip"


def start_export(
    db: Session,
    resource_ids: Sequence[UUID],
    watermark: bool,
    *,
    render: Optional[RenderFn] = None,
    token: Optional[CancellationToken] = None,
    on_progress: Optional[ProgressFn] = None,
    render_timeout: Optional[float] = None,
    blob_store: Optional[BlobStore] = None,
) -> ExportOutcome:
    """
    Load every resource bundle in one read, then render and package them.

    Returns an ``ExportArchive``, ``ExportCancelled`` or ``ExportEmpty``.
    Unknown resource ids raise ``NotFoundError`` before any rendering.
    """
    blob_store = blob_store or get_blob_store()
    bundles = load_export_bundles(db, resource_ids, blob_store=blob_store)

    job = BatchExportJob(
        bundles,
        render or ImagePagesRenderer(blob_store),
        watermark=watermark,
        token=token,
        on_progress=on_progress,
        render_timeout=render_timeout,
    )
    return job.run()


__all__ = ["archive_file_name", "start_export"]
