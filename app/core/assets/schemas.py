from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from app.core.assets.models import AssetSource, OwnerType
from app.core.assets.services import AssetDetail, AssetView, VersionView


class AssetVersionPublic(BaseModel):
    id: UUID
    asset_id: UUID
    storage_id: str
    prompt: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    source: AssetSource
    source_version_id: Optional[UUID] = None
    pinned: bool
    created_at: datetime
    url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_view(cls, view: Optional[VersionView]) -> Optional["AssetVersionPublic"]:
        if view is None:
            return None
        return cls.model_validate(view.version).model_copy(update={"url": view.url})


class AssetPublic(BaseModel):
    id: UUID
    owner_type: OwnerType
    owner_id: UUID
    asset_type: str
    asset_key: str
    current_version_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssetWithCurrentPublic(AssetPublic):
    current_version: Optional[AssetVersionPublic] = None

    @classmethod
    def from_view(cls, view: AssetView) -> "AssetWithCurrentPublic":
        return cls.model_validate(view.asset).model_copy(
            update={"current_version": AssetVersionPublic.from_view(view.current_version)}
        )


class AssetDetailPublic(AssetWithCurrentPublic):
    versions: List[AssetVersionPublic] = Field(default_factory=list)

    @classmethod
    def from_detail(cls, detail: AssetDetail) -> "AssetDetailPublic":
        return cls.model_validate(detail.asset).model_copy(
            update={
                "current_version": AssetVersionPublic.from_view(detail.current_version),
                "versions": [AssetVersionPublic.from_view(v) for v in detail.versions],
            }
        )


class AssetVersionCreateIn(BaseModel):
    owner_type: OwnerType
    owner_id: UUID
    asset_type: str = Field(..., min_length=1)
    asset_key: str = Field(..., min_length=1)
    storage_id: str = Field(..., min_length=1)
    prompt: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    source: AssetSource = AssetSource.GENERATED
    source_version_id: Optional[UUID] = None


class SetCurrentVersionIn(BaseModel):
    version_id: UUID


class PinVersionIn(BaseModel):
    pinned: bool


class BlobUploadPublic(BaseModel):
    storage_id: str
    url: Optional[str] = None


__all__ = [
    "AssetVersionPublic",
    "AssetPublic",
    "AssetWithCurrentPublic",
    "AssetDetailPublic",
    "AssetVersionCreateIn",
    "SetCurrentVersionIn",
    "PinVersionIn",
    "BlobUploadPublic",
]
