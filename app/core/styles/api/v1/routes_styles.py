from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_blob_store, get_db
from app.core.styles.schemas import StylePublic
from app.core.styles.services import get_style_with_frame_urls
from app.response import StandardResponse, make_success_response
from app.utils.blob_store import BlobStore


router = APIRouter(prefix="/styles", tags=["styles"])


@router.get(
    "/{style_id}",
    response_model=StandardResponse,
    summary="Get a style with resolved frame URLs",
)
def get_style_view(
    style_id: UUID,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> StandardResponse:
    style, frame_urls = get_style_with_frame_urls(
        db, style_id, blob_store=blob_store
    )
    result = StylePublic.model_validate(style).model_copy(
        update={"frame_urls": frame_urls}
    )
    return make_success_response(result=result.model_dump(mode="json"))


__all__ = ["router"]
