from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid, func

from app.database.base import Base, JSONType


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Resource(Base):
    __tablename__ = "resources"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    style_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("styles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    type = Column(String, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    content = Column(JSONType, nullable=False, default=dict)
    status = Column(String, nullable=False, default="draft")

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


__all__ = ["Resource"]
