from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from redis import Redis

from app.core.dependencies import get_blob_store, get_redis_client
from app.core.exports.schemas import ExportJobPublic, ExportJobStatus, ExportStartIn
from app.core.exports.store import ExportJobStore
from app.response import StandardResponse, make_success_response
from app.response.response import APIError, NotFoundError
from app.utils.blob_store import BlobStore
from carekit_bg_worker.celery_app import celery_app


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
router = APIRouter(prefix="/exports", tags=["exports"])


def get_export_store(redis: Redis = Depends(get_redis_client)) -> ExportJobStore:
    return ExportJobStore(redis)


def _require_job(store: ExportJobStore, job_id: str) -> ExportJobStatus:
    status = store.get(job_id)
    if status is None:
        raise NotFoundError(
            code="EXPORT_JOB_NOT_FOUND",
            message="Export job not found.",
            details={"job_id": job_id},
        )
    return status


@router.post(
    "",
    response_model=StandardResponse,
    summary="Start a batch export",
)
def start_export_view(
    payload: ExportStartIn,
    store: ExportJobStore = Depends(get_export_store),
) -> StandardResponse:
    status = store.create(payload.resource_ids, payload.watermark)
    try:
        celery_app.send_task(
            "exports.batch",
            args=[
                status.id,
                [str(rid) for rid in payload.resource_ids],
                payload.watermark,
            ],
        )
    except Exception as exc:
        store.mark_failed(status.id, "Export queue unavailable")
        raise APIError(
            code="EXPORT_QUEUE_UNAVAILABLE",
            http_code=503,
            message="Export could not be queued.",
        ) from exc

    logger.info("export queued (job_id=%s, total=%s)", status.id, status.total)
    return make_success_response(
        result=ExportJobPublic.from_status(status).model_dump(mode="json")
    )


@router.get(
    "/{job_id}",
    response_model=StandardResponse,
    summary="Export progress and outcome",
)
def get_export_view(
    job_id: str,
    store: ExportJobStore = Depends(get_export_store),
) -> StandardResponse:
    status = _require_job(store, job_id)
    return make_success_response(
        result=ExportJobPublic.from_status(status).model_dump(mode="json")
    )


@router.post(
    "/{job_id}/cancel",
    response_model=StandardResponse,
    summary="Cancel a running export",
)
def cancel_export_view(
    job_id: str,
    store: ExportJobStore = Depends(get_export_store),
) -> StandardResponse:
    _require_job(store, job_id)
    status = store.request_cancel(job_id)
    logger.info("export cancel requested (job_id=%s)", job_id)
    return make_success_response(
        result=ExportJobPublic.from_status(status).model_dump(mode="json")
    )


@router.get(
    "/{job_id}/archive",
    summary="Download the export archive",
    response_class=Response,
)
def download_export_archive_view(
    job_id: str,
    store: ExportJobStore = Depends(get_export_store),
    blob_store: BlobStore = Depends(get_blob_store),
) -> Response:
    status = _require_job(store, job_id)
    if status.archive_storage_id is None:
        raise APIError(
            code="EXPORT_ARCHIVE_NOT_READY",
            http_code=409,
            message="Export has no archive.",
            details={"state": status.state.value},
        )
    try:
        content = blob_store.fetch(status.archive_storage_id)
    except FileNotFoundError as exc:
        raise NotFoundError(
            code="EXPORT_ARCHIVE_NOT_FOUND",
            message="Export archive is no longer available.",
        ) from exc

    filename = status.archive_name or "export.zip"
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


__all__ = ["router", "get_export_store"]
