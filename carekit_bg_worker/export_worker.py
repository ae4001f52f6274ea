from __future__ import annotations

from typing import Any, Dict, List
from uuid import UUID

from loguru import logger

from app.core.config import settings
from app.core.exports.job import ExportArchive
from app.core.exports.renderer import ImagePagesRenderer
from app.core.exports.schemas import ExportJobState
from app.core.exports.services import archive_file_name, start_export
from app.core.exports.store import ExportJobStore, RedisCancellationToken
from app.database.session import SessionLocal
from app.response.response import APIError
from app.utils.blob_store import get_blob_store
from app.utils.redis_client import get_redis
from carekit_bg_worker.celery_app import celery_app


def _error(code: str, message: str, http_code: int = 400) -> Dict[str, Any]:
    return {
        "ok": False,
        "error": {
            "code": code,
            "message": message,
            "http_code": http_code,
        },
    }


@celery_app.task(name="exports.batch")
def run_batch_export_task(
    job_id: str,
    resource_ids: List[str],
    watermark: bool,
) -> Dict[str, Any]:
    store = ExportJobStore(get_redis())
    blob_store = get_blob_store()
    db = SessionLocal()
    try:
        try:
            ids = [UUID(rid) for rid in resource_ids]
        except ValueError:
            store.mark_failed(job_id, "Invalid resource id.")
            return _error("EXPORT_INVALID_RESOURCE_ID", "Invalid resource id.", 400)

        store.update(job_id, state=ExportJobState.EXPORTING)
        outcome = start_export(
            db,
            ids,
            watermark,
            render=ImagePagesRenderer(blob_store),
            token=RedisCancellationToken(store, job_id),
            on_progress=lambda progress: store.report_progress(job_id, progress),
            render_timeout=settings.export_render_timeout_seconds,
            blob_store=blob_store,
        )

        archive_storage_id = None
        if isinstance(outcome, ExportArchive):
            archive_storage_id = blob_store.store(outcome.archive, "application/zip")

        status = store.record_outcome(
            job_id,
            outcome,
            archive_storage_id=archive_storage_id,
            archive_name=archive_file_name() if archive_storage_id else None,
        )
        job = status.model_dump(mode="json") if status is not None else None
        return {"ok": True, "job": job}
    except APIError as exc:
        store.mark_failed(job_id, exc.message)
        return _error(exc.code, exc.message, exc.http_code)
    except Exception as exc:
        logger.exception("Batch export failed", job_id=job_id)
        store.mark_failed(job_id, str(exc))
        return _error("EXPORT_UNEXPECTED_ERROR", str(exc), 500)
    finally:
        db.close()


__all__ = ["run_batch_export_task"]
