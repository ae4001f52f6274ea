from __future__ import annotations

import uuid

import pytest
from PIL import Image

from app.core.exports.bundles import BundleAsset, BundleStyle, ExportBundle
from app.core.exports.renderer import ImagePagesRenderer, RenderError, render_pages


def _bundle(storage_ids, frames=None):
    style = None
    if frames is not None:
        style = BundleStyle(
            id=uuid.uuid4(),
            name="Calm",
            colors={},
            typography={},
            card_layout=None,
            frames=frames,
        )
    return ExportBundle(
        resource_id=uuid.uuid4(),
        name="Deck",
        type="emotion_cards",
        content={},
        assets=[
            BundleAsset(
                asset_id=uuid.uuid4(),
                asset_type="emotion_card_image",
                asset_key=f"card-{index}",
                storage_id=storage_id,
                url=None,
            )
            for index, storage_id in enumerate(storage_ids)
        ],
        style=style,
    )


def test_one_page_per_image(blob_store, store_image):
    renderer = ImagePagesRenderer(blob_store)

    pdf = renderer(_bundle([store_image("red"), store_image("blue")]), watermark=False)

    assert pdf.startswith(b"%PDF")
    assert b"/Count 2" in pdf


def test_assets_without_versions_raise(blob_store):
    with pytest.raises(RenderError):
        ImagePagesRenderer(blob_store)(_bundle([None]), watermark=False)


def test_missing_blob_raises(blob_store):
    with pytest.raises(FileNotFoundError):
        ImagePagesRenderer(blob_store)(_bundle(["0" * 32 + ".png"]), watermark=False)


def test_missing_border_frame_is_ignored(blob_store, store_image):
    bundle = _bundle([store_image()], frames={"border": {"storage_id": "f" * 32}})

    pdf = ImagePagesRenderer(blob_store)(bundle, watermark=True)

    assert pdf.startswith(b"%PDF")


def test_render_pages_requires_pages():
    with pytest.raises(RenderError):
        render_pages([])

    assert render_pages([Image.new("RGB", (10, 10), "white")]).startswith(b"%PDF")
