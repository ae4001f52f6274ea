from __future__ import annotations

import io
from typing import List, Optional, Protocol

from loguru import logger
from PIL import Image, ImageDraw, ImageFont

from app.core.exports.bundles import ExportBundle
from app.utils.blob_store import BlobStore, get_blob_store


# A4 portrait at 150 dpi.
PAGE_SIZE = (1240, 1754)
PAGE_MARGIN = 60
PAGE_DPI = 150.0
WATERMARK_TEXT = "PREVIEW"


class RenderError(Exception):
    """A resource could not be turned into a document."""


class DocumentRenderer(Protocol):
    def __call__(self, bundle: ExportBundle, watermark: bool) -> bytes:
        ...


class ImagePagesRenderer:
    """
    Default renderer: one PDF page per current asset image.

    Images are laid out in asset-key order, scaled to fit inside the page
    margins and centred. The style's ``border`` frame, when present, is
    drawn over every page.
    """

    def __init__(self, blob_store: Optional[BlobStore] = None) -> None:
        self.blob_store = blob_store or get_blob_store()

    def __call__(self, bundle: ExportBundle, watermark: bool) -> bytes:
        storage_ids = [a.storage_id for a in bundle.assets if a.storage_id]
        if not storage_ids:
            raise RenderError("No image available")

        border = self._load_border(bundle)
        return render_pages(
            [
                self._page(storage_id, border=border, watermark=watermark)
                for storage_id in storage_ids
            ]
        )

    def _open(self, storage_id: str) -> Image.Image:
        content = self.blob_store.fetch(storage_id)
        with Image.open(io.BytesIO(content)) as image:
            image.load()
            return image.copy()

    def _load_border(self, bundle: ExportBundle) -> Optional[Image.Image]:
        frames = (bundle.style.frames if bundle.style else None) or {}
        storage_id = (frames.get("border") or {}).get("storage_id")
        if not storage_id:
            return None
        try:
            return self._open(storage_id).convert("RGBA").resize(PAGE_SIZE)
        except (FileNotFoundError, OSError) as exc:
            logger.warning(
                "Style border frame unavailable, rendering without it",
                resource_id=str(bundle.resource_id),
                storage_id=storage_id,
                error=repr(exc),
            )
            return None

    def _page(
        self,
        storage_id: str,
        *,
        border: Optional[Image.Image],
        watermark: bool,
    ) -> Image.Image:
        picture = self._open(storage_id).convert("RGB")
        width, height = PAGE_SIZE
        picture.thumbnail((width - 2 * PAGE_MARGIN, height - 2 * PAGE_MARGIN))

        page = Image.new("RGB", PAGE_SIZE, "white")
        page.paste(
            picture,
            ((width - picture.width) // 2, (height - picture.height) // 2),
        )
        if border is not None:
            page.paste(border, (0, 0), border)
        if watermark:
            _stamp_watermark(page)
        return page


def _stamp_watermark(page: Image.Image) -> None:
    draw = ImageDraw.Draw(page)
    font = ImageFont.load_default()
    width, height = page.size
    step = height // 6
    for y in range(step, height, step):
        draw.text((width // 3, y), WATERMARK_TEXT, fill=(190, 190, 190), font=font)


def render_pages(images: List[Image.Image]) -> bytes:
    """Assemble already prepared page images into a PDF."""
    if not images:
        raise RenderError("No pages to render")
    buffer = io.BytesIO()
    images[0].save(
        buffer,
        format="PDF",
        save_all=True,
        append_images=images[1:],
        resolution=PAGE_DPI,
    )
    return buffer.getvalue()


__all__ = [
    "RenderError",
    "DocumentRenderer",
    "ImagePagesRenderer",
    "render_pages",
]
