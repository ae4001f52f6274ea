from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from app.core.assets.models import OwnerType
from app.core.assets.schemas import (
    AssetDetailPublic,
    AssetPublic,
    AssetVersionCreateIn,
    AssetVersionPublic,
    AssetWithCurrentPublic,
    BlobUploadPublic,
    PinVersionIn,
    SetCurrentVersionIn,
)
from app.core.assets.services import (
    create_version,
    delete_version,
    get_asset,
    get_by_owner,
    pin_version,
    set_current_version,
    upload_blob,
)
from app.core.dependencies import get_blob_store, get_db
from app.response import StandardResponse, make_success_response
from app.utils.blob_store import BlobStore


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
router = APIRouter(prefix="/assets", tags=["assets"])


@router.get(
    "",
    response_model=StandardResponse,
    summary="List an owner's assets with their current versions",
)
def list_owner_assets_view(
    owner_type: OwnerType = Query(...),
    owner_id: UUID = Query(...),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> StandardResponse:
    views = get_by_owner(db, owner_type, owner_id, blob_store=blob_store)
    result = [
        AssetWithCurrentPublic.from_view(view).model_dump(mode="json")
        for view in views
    ]
    return make_success_response(result=result)


@router.get(
    "/lookup",
    response_model=StandardResponse,
    summary="Get one asset with its version history",
)
def get_asset_view(
    owner_type: OwnerType = Query(...),
    owner_id: UUID = Query(...),
    asset_type: str = Query(..., min_length=1),
    asset_key: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> StandardResponse:
    detail = get_asset(
        db,
        owner_type,
        owner_id,
        asset_type,
        asset_key,
        blob_store=blob_store,
    )
    if detail is None:
        return make_success_response(result=None)
    return make_success_response(
        result=AssetDetailPublic.from_detail(detail).model_dump(mode="json")
    )


@router.post(
    "/versions",
    response_model=StandardResponse,
    summary="Record a new asset version",
)
def create_version_view(
    payload: AssetVersionCreateIn,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> StandardResponse:
    detail = create_version(
        db,
        owner_type=payload.owner_type,
        owner_id=payload.owner_id,
        asset_type=payload.asset_type,
        asset_key=payload.asset_key,
        storage_id=payload.storage_id,
        prompt=payload.prompt,
        params=payload.params,
        source=payload.source,
        source_version_id=payload.source_version_id,
        blob_store=blob_store,
    )
    return make_success_response(
        result=AssetDetailPublic.from_detail(detail).model_dump(mode="json")
    )


@router.post(
    "/uploads",
    response_model=StandardResponse,
    summary="Upload an image to blob storage",
)
async def upload_blob_view(
    file: UploadFile = File(...),
    blob_store: BlobStore = Depends(get_blob_store),
) -> StandardResponse:
    content = await file.read()
    stored = upload_blob(
        content,
        file.content_type or "",
        blob_store=blob_store,
    )
    logger.info("blob uploaded (storage_id=%s)", stored["storage_id"])
    return make_success_response(
        result=BlobUploadPublic.model_validate(stored).model_dump()
    )


@router.put(
    "/{asset_id}/current-version",
    response_model=StandardResponse,
    summary="Switch the asset's current version",
)
def set_current_version_view(
    asset_id: UUID,
    payload: SetCurrentVersionIn,
    db: Session = Depends(get_db),
) -> StandardResponse:
    asset = set_current_version(db, asset_id, payload.version_id)
    return make_success_response(
        result=AssetPublic.model_validate(asset).model_dump(mode="json")
    )


@router.put(
    "/versions/{version_id}/pin",
    response_model=StandardResponse,
    summary="Pin or unpin a version",
)
def pin_version_view(
    version_id: UUID,
    payload: PinVersionIn,
    db: Session = Depends(get_db),
) -> StandardResponse:
    version = pin_version(db, version_id, payload.pinned)
    if version is None:
        return make_success_response(result=None)
    return make_success_response(
        result=AssetVersionPublic.model_validate(version).model_dump(mode="json")
    )


@router.delete(
    "/versions/{version_id}",
    response_model=StandardResponse,
    summary="Delete a version and its image",
)
def delete_version_view(
    version_id: UUID,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> StandardResponse:
    asset = delete_version(db, version_id, blob_store=blob_store)
    if asset is None:
        return make_success_response(result=None)
    return make_success_response(
        result=AssetPublic.model_validate(asset).model_dump(mode="json")
    )


__all__ = ["router"]
