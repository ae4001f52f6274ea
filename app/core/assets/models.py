from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)

from app.database.base import Base, JSONType


class OwnerType(str, Enum):
    RESOURCE = "resource"
    STYLE = "style"


class AssetSource(str, Enum):
    GENERATED = "generated"
    EDITED = "edited"
    UPLOADED = "uploaded"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Asset(Base):
    __tablename__ = "assets"
    __table_args__ = (
        UniqueConstraint(
            "owner_type",
            "owner_id",
            "asset_type",
            "asset_key",
            name="uq_assets_owner_type_key",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_type = Column(String, nullable=False)
    owner_id = Column(Uuid(as_uuid=True), nullable=False)
    asset_type = Column(String, nullable=False)
    asset_key = Column(String, nullable=False)
    # Always a version of this asset; enforced by the asset services.
    current_version_id = Column(Uuid(as_uuid=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )


Index("ix_assets_owner", Asset.owner_type, Asset.owner_id)


class AssetVersion(Base):
    __tablename__ = "asset_versions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    asset_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False,
    )
    storage_id = Column(String, nullable=False)
    prompt = Column(Text, nullable=True)
    params = Column(JSONType, nullable=True)
    source = Column(String, nullable=False, default=AssetSource.GENERATED.value)
    source_version_id = Column(Uuid(as_uuid=True), nullable=True)
    pinned = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )


Index(
    "ix_asset_versions_asset_created_at",
    AssetVersion.asset_id,
    AssetVersion.created_at.desc(),
)


__all__ = ["OwnerType", "AssetSource", "Asset", "AssetVersion"]
