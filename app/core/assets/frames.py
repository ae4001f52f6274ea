"""
Mirror of style frame assets into ``Style.frames``.

``Style.frames`` is a cache keyed by frame role. For every style-frame asset
it must hold a projection of that asset's current version, or no entry at
all when the asset has no current version. Every code path that moves the
current pointer of such an asset calls :func:`propagate_frame` inside the
same session and commit.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.assets.models import Asset, AssetVersion, OwnerType
from app.core.styles.models import Style


class FrameRole(str, Enum):
    BORDER = "border"
    FULL_CARD = "fullCard"


FRAME_ROLE_BY_ASSET_TYPE: Dict[str, FrameRole] = {
    "frame_border": FrameRole.BORDER,
    "frame_full_card": FrameRole.FULL_CARD,
}

FrameEntry = Dict[str, Any]
Frames = Dict[str, FrameEntry]


def frame_role_for(owner_type: str, asset_type: str) -> Optional[FrameRole]:
    if owner_type != OwnerType.STYLE.value:
        return None
    return FRAME_ROLE_BY_ASSET_TYPE.get(asset_type)


def frame_entry(version: AssetVersion, generated_at: datetime) -> FrameEntry:
    return {
        "storage_id": version.storage_id,
        "prompt": version.prompt,
        "generated_at": generated_at.isoformat(),
    }


def merge_frames(
    frames: Optional[Frames],
    role: FrameRole,
    entry: Optional[FrameEntry],
) -> Optional[Frames]:
    """
    Return a new frames map with exactly ``role`` replaced.

    Other roles are copied through untouched. Removing the last role yields
    ``None`` instead of an empty map.
    """
    merged: Frames = dict(frames or {})
    if entry is None:
        merged.pop(role.value, None)
        return merged or None
    merged[role.value] = entry
    return merged


def propagate_frame(
    db: Session,
    asset: Asset,
    version: Optional[AssetVersion],
    now: datetime,
) -> Optional[Style]:
    """
    Sync ``Style.frames`` with ``version`` for a style-frame asset.

    Does nothing for assets that are not style frames. The caller commits.
    """
    role = frame_role_for(asset.owner_type, asset.asset_type)
    if role is None:
        return None

    style = db.get(
        Style, asset.owner_id, with_for_update=True, populate_existing=True
    )
    if style is None:
        return None

    entry = frame_entry(version, now) if version is not None else None
    style.frames = merge_frames(style.frames, role, entry)
    style.updated_at = now
    db.add(style)
    return style


__all__ = [
    "FrameRole",
    "FRAME_ROLE_BY_ASSET_TYPE",
    "frame_role_for",
    "frame_entry",
    "merge_frames",
    "propagate_frame",
]
