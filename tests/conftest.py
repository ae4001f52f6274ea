from __future__ import annotations

import io
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="carekit-uploads-"))

import pytest  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.assets import services as asset_services  # noqa: E402
from app.core.assets.models import Asset, AssetVersion, OwnerType  # noqa: E402
from app.core.resources.models import Resource  # noqa: E402
from app.core.styles.models import Style  # noqa: E402
from app.database.base import Base  # noqa: E402
from app.utils.blob_store import FileSystemBlobStore  # noqa: E402


BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeRedis:
    """The handful of Redis commands the export job store uses."""

    def __init__(self) -> None:
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.values: Dict[str, str] = {}

    def hset(self, key: str, mapping: Dict[str, Any]) -> int:
        bucket = self.hashes.setdefault(key, {})
        added = len([k for k in mapping if k not in bucket])
        bucket.update({k: str(v) for k, v in mapping.items()})
        return added

    def hgetall(self, key: str) -> Dict[str, str]:
        return dict(self.hashes.get(key, {}))

    def expire(self, key: str, seconds: int) -> bool:
        return key in self.hashes or key in self.values

    def exists(self, *keys: str) -> int:
        return sum(1 for k in keys if k in self.hashes or k in self.values)

    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.values[key] = str(value)
        return True

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def ping(self) -> bool:
        return True


def png_bytes(color: str = "red", size: tuple = (64, 48)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def blob_store(tmp_path):
    return FileSystemBlobStore(tmp_path / "uploads", "/uploads")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def clock(monkeypatch):
    """Strictly increasing timestamps for the asset services."""
    ticks = {"n": 0}

    def _next() -> datetime:
        ticks["n"] += 1
        return BASE_TIME + timedelta(seconds=ticks["n"])

    monkeypatch.setattr(asset_services, "_now_utc", _next)
    return _next


@pytest.fixture
def make_style(db):
    def _make(name: str = "Calm pastel", frames: Optional[dict] = None) -> Style:
        style = Style(
            name=name,
            colors={"primary": "#88c", "background": "#fff"},
            typography={"headingFont": "Nunito", "bodyFont": "Nunito"},
            illustration_style="soft watercolor",
            frames=frames,
        )
        db.add(style)
        db.commit()
        db.refresh(style)
        return style

    return _make


@pytest.fixture
def make_resource(db):
    def _make(
        name: str = "Feelings deck",
        style: Optional[Style] = None,
        type: str = "emotion_cards",
    ) -> Resource:
        resource = Resource(
            name=name,
            type=type,
            style_id=style.id if style is not None else None,
            content={"cards": []},
        )
        db.add(resource)
        db.commit()
        db.refresh(resource)
        return resource

    return _make


@pytest.fixture
def store_image(blob_store):
    def _store(color: str = "red") -> str:
        return blob_store.store(png_bytes(color), "image/png")

    return _store


@pytest.fixture
def add_version(db):
    """Insert a version with an explicit timestamp, bypassing the services."""

    def _add(
        asset: Asset,
        storage_id: str,
        seconds: int,
        *,
        prompt: Optional[str] = None,
        pinned: bool = False,
    ) -> AssetVersion:
        version = AssetVersion(
            asset_id=asset.id,
            storage_id=storage_id,
            prompt=prompt,
            source="generated",
            pinned=pinned,
            created_at=BASE_TIME + timedelta(seconds=seconds),
        )
        db.add(version)
        db.commit()
        db.refresh(version)
        return version

    return _add


@pytest.fixture
def make_asset(db):
    def _make(
        owner_type: OwnerType,
        owner_id,
        asset_type: str = "emotion_card_image",
        asset_key: str = "happy",
    ) -> Asset:
        asset = Asset(
            owner_type=owner_type.value,
            owner_id=owner_id,
            asset_type=asset_type,
            asset_key=asset_key,
        )
        db.add(asset)
        db.commit()
        db.refresh(asset)
        return asset

    return _make
