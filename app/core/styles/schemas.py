from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class FrameEntryPublic(BaseModel):
    storage_id: str
    prompt: Optional[str] = None
    generated_at: Optional[datetime] = None


class StylePublic(BaseModel):
    id: UUID
    name: str
    is_preset: bool
    colors: Dict[str, Any]
    typography: Dict[str, Any]
    illustration_style: str
    card_layout: Optional[Dict[str, Any]] = None
    frames: Optional[Dict[str, FrameEntryPublic]] = None
    frame_urls: Dict[str, Optional[str]] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = ["FrameEntryPublic", "StylePublic"]
