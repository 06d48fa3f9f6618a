"""Per-year archive documents: listing, upload classification, downloads."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import httpx
from pydantic import ValidationError

from rotaract.app.schemas.archive import ArchiveFile, ArchiveFileType
from rotaract.app.services.api_client import ApiError, ClubApiClient
from rotaract.app.services.file_service import DownloadStorage

logger = logging.getLogger(__name__)

Alert = Callable[[str], None]

_EXTENSION_TYPES: dict[str, ArchiveFileType] = {
    "pdf": ArchiveFileType.FINANCIAL_REPORT,
    "xlsx": ArchiveFileType.MEMBER_LIST,
    "xls": ArchiveFileType.MEMBER_LIST,
    "zip": ArchiveFileType.BILLS_ARCHIVE,
}

_REPORT_FILENAMES: dict[str, str] = {
    "pdf": "financial-report-{year}.pdf",
    "excel": "financial-report-{year}.xlsx",
    "bills": "bills-{year}.zip",
}


def infer_file_type(filename: str) -> ArchiveFileType:
    """Classify an upload by its extension alone (case-insensitive)."""
    if "." not in filename:
        return ArchiveFileType.OTHER
    extension = filename.rsplit(".", 1)[-1].lower()
    return _EXTENSION_TYPES.get(extension, ArchiveFileType.OTHER)


def report_filename(year: str, kind: str = "pdf") -> str:
    return _REPORT_FILENAMES[kind].format(year=year)


def _log_alert(message: str) -> None:
    logger.error(message)


class ArchiveFileService:
    """List, upload and download the documents attached to a Rotaract year.

    Failures are reported through *alert* and never raised to the caller.
    """

    def __init__(
        self,
        api: ClubApiClient,
        storage: DownloadStorage | None = None,
        alert: Alert | None = None,
    ) -> None:
        self.api = api
        self.storage = storage or DownloadStorage()
        self.alert = alert or _log_alert

    async def list_files(self, year: str) -> list[ArchiveFile]:
        """Files archived for *year*; a year with no archive record has none."""
        if not year:
            return []
        try:
            archive = await self.api.get_archive(year)
        except ApiError as exc:
            if not exc.is_not_found:
                logger.warning("Could not load archive files for %s: %s", year, exc)
            return []
        except (httpx.HTTPError, ValidationError) as exc:
            logger.warning("Could not load archive files for %s: %s", year, exc)
            return []
        if archive is None:
            return []
        return list(archive.files)

    async def upload(
        self, year: str, filename: str, content: bytes
    ) -> list[ArchiveFile] | None:
        """Upload one file; returns the server's file list, or ``None`` on failure."""
        file_type = infer_file_type(filename)
        try:
            files = await self.api.add_archive_file(year, filename, content, file_type)
        except (ApiError, httpx.HTTPError, ValidationError) as exc:
            self.alert(str(exc) or "Failed to upload file")
            return None
        logger.info("Uploaded %s (%s) to archive %s", filename, file_type.value, year)
        return files

    async def upload_path(self, year: str, path: Path) -> list[ArchiveFile] | None:
        try:
            content = path.read_bytes()
        except OSError as exc:
            self.alert(f"Failed to read {path}: {exc.strerror or exc}")
            return None
        return await self.upload(year, path.name, content)

    async def download_report(self, year: str, kind: str = "pdf") -> Path | None:
        """Fetch a year-level report export and save it locally."""
        try:
            data = await self.api.export_report(year, kind)
        except (ApiError, httpx.HTTPError, ValueError):
            logger.exception("Report download failed for %s (%s)", year, kind)
            self.alert("Failed to download report")
            return None
        return self._save(report_filename(year, kind), data)

    async def download_file(self, file: ArchiveFile) -> Path | None:
        if not file.url:
            return None
        try:
            data = await self.api.download(self.api.resolve_file_url(file.url))
        except (ApiError, httpx.HTTPError):
            logger.exception("Archive file download failed: %s", file.url)
            self.alert("Failed to download file")
            return None
        return self._save(file.name or "archive-file", data)

    def _save(self, filename: str, data: bytes) -> Path | None:
        try:
            return self.storage.save(filename, data)
        except OSError:
            logger.exception("Could not write %s under %s", filename, self.storage.root)
            self.alert(f"Failed to save {filename}")
            return None
