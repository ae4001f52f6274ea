from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from loguru import logger
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.assets.frames import propagate_frame
from app.core.assets.models import Asset, AssetSource, AssetVersion, OwnerType
from app.core.config import settings
from app.response.response import (
    APIError,
    NotFoundError,
    OwnershipMismatchError,
    PinnedVersionError,
)
from app.utils.blob_store import BlobStore, BlobStoreError, get_blob_store


@dataclass
class VersionView:
    version: AssetVersion
    url: Optional[str]


@dataclass
class AssetView:
    asset: Asset
    current_version: Optional[VersionView]


@dataclass
class AssetDetail:
    asset: Asset
    versions: List[VersionView]
    current_version: Optional[VersionView]


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def _newest_first(query):
    # Ties on created_at are broken by id so ordering is deterministic.
    return query.order_by(desc(AssetVersion.created_at), desc(AssetVersion.id))


def _find_asset(
    db: Session,
    owner_type: OwnerType,
    owner_id: UUID,
    asset_type: str,
    asset_key: str,
    *,
    lock: bool = False,
) -> Optional[Asset]:
    query = db.query(Asset).filter(
        Asset.owner_type == OwnerType(owner_type).value,
        Asset.owner_id == owner_id,
        Asset.asset_type == asset_type,
        Asset.asset_key == asset_key,
    )
    if lock:
        query = query.with_for_update().populate_existing()
    return query.first()


def _lock_asset(db: Session, asset_id: UUID) -> Optional[Asset]:
    # Pointer moves on one asset are serialized by this row lock.
    return db.get(Asset, asset_id, with_for_update=True, populate_existing=True)


def _latest_version(db: Session, asset_id: UUID) -> Optional[AssetVersion]:
    return _newest_first(
        db.query(AssetVersion).filter(AssetVersion.asset_id == asset_id)
    ).first()


def _delete_blob(blob_store: BlobStore, storage_id: str) -> None:
    try:
        blob_store.delete(storage_id)
    except BlobStoreError as exc:
        # Version removal proceeds even when the blob cannot be removed.
        logger.warning(
            "Blob delete failed, continuing with version removal",
            storage_id=storage_id,
            error=repr(exc),
        )


def _view(blob_store: BlobStore, version: Optional[AssetVersion]) -> Optional[VersionView]:
    if version is None:
        return None
    return VersionView(version=version, url=blob_store.get_url(version.storage_id))


def get_by_owner(
    db: Session,
    owner_type: OwnerType,
    owner_id: UUID,
    *,
    blob_store: Optional[BlobStore] = None,
) -> List[AssetView]:
    blob_store = blob_store or get_blob_store()
    assets = (
        db.query(Asset)
        .filter(
            Asset.owner_type == OwnerType(owner_type).value,
            Asset.owner_id == owner_id,
        )
        .order_by(Asset.asset_type, Asset.asset_key)
        .all()
    )

    current_ids = [a.current_version_id for a in assets if a.current_version_id]
    versions: Dict[UUID, AssetVersion] = {}
    if current_ids:
        rows = db.query(AssetVersion).filter(AssetVersion.id.in_(current_ids)).all()
        versions = {row.id: row for row in rows}

    return [
        AssetView(
            asset=asset,
            current_version=_view(blob_store, versions.get(asset.current_version_id)),
        )
        for asset in assets
    ]


def get_asset(
    db: Session,
    owner_type: OwnerType,
    owner_id: UUID,
    asset_type: str,
    asset_key: str,
    *,
    blob_store: Optional[BlobStore] = None,
) -> Optional[AssetDetail]:
    blob_store = blob_store or get_blob_store()
    asset = _find_asset(db, owner_type, owner_id, asset_type, asset_key)
    if asset is None:
        return None

    rows = _newest_first(
        db.query(AssetVersion).filter(AssetVersion.asset_id == asset.id)
    ).all()
    versions = [_view(blob_store, row) for row in rows]
    current = next(
        (v for v in versions if v.version.id == asset.current_version_id),
        None,
    )
    return AssetDetail(asset=asset, versions=versions, current_version=current)


def _get_or_create_asset(
    db: Session,
    owner_type: OwnerType,
    owner_id: UUID,
    asset_type: str,
    asset_key: str,
    now: datetime,
) -> Asset:
    asset = _find_asset(
        db, owner_type, owner_id, asset_type, asset_key, lock=True
    )
    if asset is not None:
        return asset

    asset = Asset(
        owner_type=OwnerType(owner_type).value,
        owner_id=owner_id,
        asset_type=asset_type,
        asset_key=asset_key,
        current_version_id=None,
        created_at=now,
        updated_at=now,
    )
    db.add(asset)
    db.flush()
    return asset


def _prune_unpinned(
    db: Session,
    asset: Asset,
    keep: int,
) -> List[str]:
    """
    Delete the rows of unpinned versions beyond ``keep``.

    Returns their storage ids; the caller removes those blobs only after
    the transaction commits.
    """
    unpinned = _newest_first(
        db.query(AssetVersion).filter(
            AssetVersion.asset_id == asset.id,
            AssetVersion.pinned.is_(False),
        )
    ).all()

    stale = [
        v for v in unpinned[keep:]
        if v.id != asset.current_version_id
    ]
    for version in stale:
        db.delete(version)

    if stale:
        logger.info(
            "Pruned old asset versions",
            asset_id=str(asset.id),
            pruned=len(stale),
        )
    return [version.storage_id for version in stale]


def create_version(
    db: Session,
    *,
    owner_type: OwnerType,
    owner_id: UUID,
    asset_type: str,
    asset_key: str,
    storage_id: str,
    prompt: Optional[str] = None,
    params: Optional[Dict[str, Any]] = None,
    source: AssetSource = AssetSource.GENERATED,
    source_version_id: Optional[UUID] = None,
    blob_store: Optional[BlobStore] = None,
) -> AssetDetail:
    """
    Record a newly generated, edited or uploaded image as the asset's
    current version, creating the asset on first write.
    """
    blob_store = blob_store or get_blob_store()
    now = _now_utc()

    try:
        asset = _get_or_create_asset(
            db, owner_type, owner_id, asset_type, asset_key, now
        )
        version = AssetVersion(
            asset_id=asset.id,
            storage_id=storage_id,
            prompt=prompt,
            params=params,
            source=AssetSource(source).value,
            source_version_id=source_version_id,
            pinned=False,
            created_at=now,
        )
        db.add(version)
        db.flush()

        asset.current_version_id = version.id
        asset.updated_at = now
        db.add(asset)
        propagate_frame(db, asset, version, now)

        pruned = _prune_unpinned(db, asset, settings.max_unpinned_versions)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise APIError(
            code="ASSET_CONFLICT",
            http_code=409,
            message="Asset was modified concurrently, retry the request.",
        ) from exc
    except Exception:
        db.rollback()
        raise

    for pruned_storage_id in pruned:
        _delete_blob(blob_store, pruned_storage_id)

    detail = get_asset(
        db, owner_type, owner_id, asset_type, asset_key, blob_store=blob_store
    )
    if detail is None:
        raise NotFoundError(
            code="ASSET_NOT_FOUND",
            message="Asset was removed while its version was being recorded.",
            details={"asset_key": asset_key, "asset_type": asset_type},
        )
    return detail


def set_current_version(
    db: Session,
    asset_id: UUID,
    version_id: UUID,
) -> Asset:
    try:
        asset = _lock_asset(db, asset_id)
        if asset is None:
            raise NotFoundError(
                code="ASSET_NOT_FOUND",
                message="Asset not found.",
                details={"asset_id": str(asset_id)},
            )

        version = db.get(AssetVersion, version_id, populate_existing=True)
        if version is None:
            raise NotFoundError(
                code="ASSET_VERSION_NOT_FOUND",
                message="Asset version not found.",
                details={"version_id": str(version_id)},
            )
        if version.asset_id != asset.id:
            raise OwnershipMismatchError(
                message="Version does not belong to asset.",
                details={
                    "asset_id": str(asset.id),
                    "version_id": str(version.id),
                    "version_asset_id": str(version.asset_id),
                },
            )

        now = _now_utc()
        asset.current_version_id = version.id
        asset.updated_at = now
        db.add(asset)
        propagate_frame(db, asset, version, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(asset)
    return asset


def pin_version(
    db: Session,
    version_id: UUID,
    pinned: bool,
) -> Optional[AssetVersion]:
    version = db.get(AssetVersion, version_id)
    if version is None:
        return None

    version.pinned = pinned
    db.add(version)
    _commit(db)
    db.refresh(version)
    return version


def delete_version(
    db: Session,
    version_id: UUID,
    *,
    blob_store: Optional[BlobStore] = None,
) -> Optional[Asset]:
    """
    Delete a version and its blob, then re-point the asset at the newest
    remaining version (or clear the pointer when none remain).
    """
    blob_store = blob_store or get_blob_store()

    version = db.get(AssetVersion, version_id)
    if version is None:
        return None

    try:
        asset = _lock_asset(db, version.asset_id)
        # Re-read under the lock: a concurrent delete may have won.
        version = db.get(AssetVersion, version_id, populate_existing=True)
        if asset is None or version is None:
            db.rollback()
            return None

        if version.pinned and settings.protect_pinned_versions:
            raise PinnedVersionError(
                message="Pinned versions cannot be deleted.",
                details={"version_id": str(version.id)},
            )

        _delete_blob(blob_store, version.storage_id)

        db.delete(version)
        db.flush()

        next_current = _latest_version(db, asset.id)
        now = _now_utc()
        asset.current_version_id = next_current.id if next_current else None
        asset.updated_at = now
        db.add(asset)
        propagate_frame(db, asset, next_current, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(asset)
    return asset


def upload_blob(
    content: bytes,
    content_type: str,
    *,
    blob_store: Optional[BlobStore] = None,
) -> Dict[str, Optional[str]]:
    blob_store = blob_store or get_blob_store()
    if not content:
        raise APIError(
            code="ASSET_UPLOAD_EMPTY",
            http_code=400,
            message="Uploaded file is empty.",
        )
    if not (content_type or "").startswith("image/"):
        raise APIError(
            code="ASSET_UPLOAD_UNSUPPORTED_TYPE",
            http_code=415,
            message="Only image uploads are supported.",
            details={"content_type": content_type},
        )
    storage_id = blob_store.store(content, content_type)
    return {"storage_id": storage_id, "url": blob_store.get_url(storage_id)}


__all__ = [
    "VersionView",
    "AssetView",
    "AssetDetail",
    "get_by_owner",
    "get_asset",
    "create_version",
    "set_current_version",
    "pin_version",
    "delete_version",
    "upload_blob",
]
