from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.assets.models import Asset, AssetVersion, OwnerType
from app.core.resources.models import Resource
from app.core.styles.models import Style
from app.core.styles.services import resolve_frame_urls
from app.response.response import NotFoundError
from app.utils.blob_store import BlobStore, get_blob_store


@dataclass
class BundleAsset:
    asset_id: UUID
    asset_type: str
    asset_key: str
    storage_id: Optional[str]
    url: Optional[str]


@dataclass
class BundleStyle:
    id: UUID
    name: str
    colors: Dict[str, Any]
    typography: Dict[str, Any]
    card_layout: Optional[Dict[str, Any]]
    frames: Optional[Dict[str, Any]]
    frame_urls: Dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class ExportBundle:
    resource_id: UUID
    name: str
    type: str
    content: Dict[str, Any]
    assets: List[BundleAsset]
    style: Optional[BundleStyle]

    def asset_map(self) -> Dict[str, str]:
        return {a.asset_key: a.url for a in self.assets if a.url}


def load_export_bundles(
    db: Session,
    resource_ids: Sequence[UUID],
    *,
    blob_store: Optional[BlobStore] = None,
) -> List[ExportBundle]:
    """
    Read resources, their current assets and their styles in one pass.

    The returned list follows ``resource_ids`` order, duplicates included.
    Unknown ids fail the whole load before anything is rendered.
    """
    blob_store = blob_store or get_blob_store()
    unique_ids = list(dict.fromkeys(resource_ids))
    if not unique_ids:
        return []

    resources = {
        row.id: row
        for row in db.query(Resource).filter(Resource.id.in_(unique_ids)).all()
    }
    missing = [str(rid) for rid in unique_ids if rid not in resources]
    if missing:
        raise NotFoundError(
            code="RESOURCE_NOT_FOUND",
            message="Some resources were not found.",
            details={"resource_ids": missing},
        )

    rows = (
        db.query(Asset, AssetVersion)
        .outerjoin(AssetVersion, AssetVersion.id == Asset.current_version_id)
        .filter(
            Asset.owner_type == OwnerType.RESOURCE.value,
            Asset.owner_id.in_(unique_ids),
        )
        .order_by(Asset.asset_key, Asset.asset_type)
        .all()
    )
    assets_by_owner: Dict[UUID, List[BundleAsset]] = {}
    for asset, version in rows:
        storage_id = version.storage_id if version is not None else None
        assets_by_owner.setdefault(asset.owner_id, []).append(
            BundleAsset(
                asset_id=asset.id,
                asset_type=asset.asset_type,
                asset_key=asset.asset_key,
                storage_id=storage_id,
                url=blob_store.get_url(storage_id) if storage_id else None,
            )
        )

    style_ids = {r.style_id for r in resources.values() if r.style_id is not None}
    styles: Dict[UUID, BundleStyle] = {}
    if style_ids:
        for style in db.query(Style).filter(Style.id.in_(style_ids)).all():
            styles[style.id] = BundleStyle(
                id=style.id,
                name=style.name,
                colors=dict(style.colors or {}),
                typography=dict(style.typography or {}),
                card_layout=style.card_layout,
                frames=dict(style.frames) if style.frames else None,
                frame_urls=resolve_frame_urls(style.frames, blob_store),
            )

    bundles: List[ExportBundle] = []
    for rid in resource_ids:
        resource = resources[rid]
        bundles.append(
            ExportBundle(
                resource_id=resource.id,
                name=resource.name,
                type=resource.type,
                content=dict(resource.content or {}),
                assets=list(assets_by_owner.get(resource.id, [])),
                style=styles.get(resource.style_id) if resource.style_id else None,
            )
        )
    return bundles


__all__ = ["BundleAsset", "BundleStyle", "ExportBundle", "load_export_bundles"]
