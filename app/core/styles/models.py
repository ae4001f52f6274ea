from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid, func

from app.database.base import Base, JSONType


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Style(Base):
    __tablename__ = "styles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    is_preset = Column(Boolean, nullable=False, default=False)
    colors = Column(JSONType, nullable=False, default=dict)
    typography = Column(JSONType, nullable=False, default=dict)
    illustration_style = Column(Text, nullable=False, default="")
    card_layout = Column(JSONType, nullable=True)
    # Denormalized mirror of the style's frame assets, keyed by frame role.
    # NULL when no frame role has a current version.
    frames = Column(JSONType, nullable=True)

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


__all__ = ["Style"]
