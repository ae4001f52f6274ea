from __future__ import annotations

from typing import Dict, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.styles.models import Style
from app.response.response import NotFoundError
from app.utils.blob_store import BlobStore, get_blob_store


def resolve_frame_urls(
    frames: Optional[dict],
    blob_store: BlobStore,
) -> Dict[str, Optional[str]]:
    urls: Dict[str, Optional[str]] = {}
    for role, entry in (frames or {}).items():
        storage_id = (entry or {}).get("storage_id")
        if storage_id:
            urls[role] = blob_store.get_url(storage_id)
    return urls


def get_style_with_frame_urls(
    db: Session,
    style_id: UUID,
    *,
    blob_store: Optional[BlobStore] = None,
) -> Tuple[Style, Dict[str, Optional[str]]]:
    blob_store = blob_store or get_blob_store()
    style = db.get(Style, style_id)
    if style is None:
        raise NotFoundError(
            code="STYLE_NOT_FOUND",
            message="Style not found.",
            details={"style_id": str(style_id)},
        )
    return style, resolve_frame_urls(style.frames, blob_store)


__all__ = ["resolve_frame_urls", "get_style_with_frame_urls"]
