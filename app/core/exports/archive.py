from __future__ import annotations

import io
import re
import zipfile
from typing import Dict, List, Set


ILLEGAL_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')
FALLBACK_FILENAME = "untitled"


def sanitize_filename(name: str) -> str:
    """Replace characters that common filesystems reject with ``_``."""
    cleaned = ILLEGAL_FILENAME_CHARS.sub("_", name or "")
    return cleaned if cleaned.strip() else FALLBACK_FILENAME


class ArchivePackager:
    """In-memory zip builder handing out collision-free document names."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", compression)
        self._repeats: Dict[str, int] = {}
        self._used: Set[str] = set()
        self._names: List[str] = []
        self._closed = False

    @property
    def file_names(self) -> List[str]:
        return list(self._names)

    def unique_name(self, display_name: str, extension: str = "pdf") -> str:
        """
        ``Name.pdf`` for the first use of a base name, then ``Name (2).pdf``,
        ``Name (3).pdf`` and so on. Names already present in the archive are
        skipped, so a literal "Name (2)" never gets overwritten.
        """
        base = sanitize_filename(display_name)
        count = self._repeats.get(base, 0)
        while True:
            count += 1
            stem = base if count == 1 else f"{base} ({count})"
            candidate = f"{stem}.{extension}"
            if candidate not in self._used:
                break
        self._repeats[base] = count
        return candidate

    def add_file(self, name: str, content: bytes) -> None:
        if self._closed:
            raise RuntimeError("Archive is already finalized")
        if name in self._used:
            raise ValueError(f"Duplicate archive entry: {name}")
        self._zip.writestr(name, content)
        self._used.add(name)
        self._names.append(name)

    def add_document(
        self,
        display_name: str,
        content: bytes,
        extension: str = "pdf",
    ) -> str:
        name = self.unique_name(display_name, extension)
        self.add_file(name, content)
        return name

    def finalize(self) -> bytes:
        if self._closed:
            raise RuntimeError("Archive is already finalized")
        self._zip.close()
        self._closed = True
        return self._buffer.getvalue()

    def discard(self) -> None:
        if not self._closed:
            self._zip.close()
            self._closed = True
        self._buffer = io.BytesIO()


__all__ = ["ILLEGAL_FILENAME_CHARS", "sanitize_filename", "ArchivePackager"]
