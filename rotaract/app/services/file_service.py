"""Local storage for downloaded reports and archive files."""

from __future__ import annotations

import re
from pathlib import Path

from rotaract.app.core.config import settings

_UNSAFE = re.compile(r"[^\w.\- ]+")


def safe_filename(name: str, fallback: str = "archive-file") -> str:
    """Strip directory parts and characters that do not belong in a filename."""
    base = Path(name.replace("\\", "/")).name
    cleaned = _UNSAFE.sub("_", base).strip(" .")
    return cleaned or fallback


class DownloadStorage:
    """Save downloaded payloads under the configured download directory."""

    def __init__(self, root: Path | None = None) -> None:
        self._root = Path(root or settings.DOWNLOAD_DIR)

    @property
    def root(self) -> Path:
        return self._root

    def save(self, filename: str, data: bytes) -> Path:
        """Persist *data* as *filename* and return the full path."""
        self._root.mkdir(parents=True, exist_ok=True)
        dest = self._root / safe_filename(filename)
        dest.write_bytes(data)
        return dest
