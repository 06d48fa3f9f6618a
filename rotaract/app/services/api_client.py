"""HTTP client for the club management REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from rotaract.app.core.config import settings
from rotaract.app.core.session import Session
from rotaract.app.schemas.archive import (
    ArchiveFile,
    ArchiveFileType,
    CloseYearRequest,
    StartNewYearRequest,
    YearArchive,
)
from rotaract.app.schemas.reports import (
    AdminDashboard,
    ClubSettings,
    EventWiseReport,
    LoginResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Something went wrong"

# Report exports available per Rotaract year
REPORT_EXPORTS: dict[str, str] = {
    "pdf": "/reports/export/pdf",
    "excel": "/reports/export/excel",
    "bills": "/reports/export/bills",
}


class ApiError(Exception):
    """The backend rejected a request (non-2xx response)."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        self.status_code = status_code
        self.errors = errors
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ClubApiClient:
    """Async client bound to one base URL and one :class:`Session`.

    Every call opens a short-lived ``httpx.AsyncClient``. Pass *transport*
    to route requests somewhere other than the network (tests).
    """

    def __init__(
        self,
        session: Session,
        base_url: str | None = None,
        *,
        file_base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.file_base_url = (file_base_url or settings.FILE_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self._transport = transport

    def with_session(self, session: Session) -> ClubApiClient:
        """Return a copy of this client bound to *session*."""
        return ClubApiClient(
            session,
            self.base_url,
            file_base_url=self.file_base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    # ─── Plumbing ──────────────────────────────────────────────────────────

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _headers(self, *, json_body: bool = True) -> dict[str, str]:
        headers = {"Accept": "application/json", **self.session.auth_headers()}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def _error_from(resp: httpx.Response) -> ApiError:
        try:
            body = resp.json()
        except ValueError:
            return ApiError(
                status_code=resp.status_code,
                message=resp.reason_phrase or DEFAULT_ERROR_MESSAGE,
            )
        if not isinstance(body, dict):
            return ApiError(status_code=resp.status_code, message=DEFAULT_ERROR_MESSAGE)
        errors = body.get("errors")
        return ApiError(
            status_code=resp.status_code,
            message=body.get("message") or DEFAULT_ERROR_MESSAGE,
            errors=errors if isinstance(errors, list) else None,
        )

    @staticmethod
    def _handle_response(resp: httpx.Response) -> Any:
        """Unwrap the ``{success, message, data}`` envelope.

        Raises :class:`ApiError` for non-2xx responses, carrying the
        backend's ``message`` and validation ``errors`` when present.
        """
        if not resp.is_success:
            raise ClubApiClient._error_from(resp)
        try:
            body = resp.json()
        except ValueError:
            raise ApiError(
                status_code=resp.status_code,
                message=f"Non-JSON response: {resp.text[:200] if resp.text else '(empty)'}",
            )
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        logger.debug("%s %s%s", method, self.base_url, path)
        async with self._client() as client:
            resp = await client.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=self._headers(),
            )
            return self._handle_response(resp)

    # ─── Auth ──────────────────────────────────────────────────────────────

    async def admin_login(self, email: str, password: str) -> Session:
        data = await self._request(
            "POST", "/auth/admin-login", json={"email": email, "password": password}
        )
        tokens = LoginResponse.model_validate(data)
        return Session(access_token=tokens.access_token, refresh_token=tokens.refresh_token)

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")

    # ─── Archive ───────────────────────────────────────────────────────────

    async def list_archives(self) -> list[YearArchive]:
        """All archive records; malformed records are skipped, not fatal."""
        data = await self._request("GET", "/archive")
        archives: list[YearArchive] = []
        for raw in data or []:
            try:
                archives.append(YearArchive.model_validate(raw))
            except ValidationError as exc:
                logger.warning("Skipping malformed archive record: %s", exc)
        return archives

    async def get_archive(self, year: str) -> YearArchive | None:
        """Fetch one year's archive; ``None`` when the backend returns no record."""
        data = await self._request("GET", f"/archive/{year}")
        if not data:
            return None
        return YearArchive.model_validate(data)

    async def close_year(self, request: CloseYearRequest) -> Any:
        return await self._request(
            "POST", "/archive/close-year", json=request.model_dump(by_alias=True)
        )

    async def start_new_year(self, request: StartNewYearRequest) -> Any:
        return await self._request(
            "POST", "/archive/start-new-year", json=request.model_dump(by_alias=True)
        )

    async def add_archive_file(
        self,
        year: str,
        filename: str,
        content: bytes,
        file_type: ArchiveFileType,
    ) -> list[ArchiveFile]:
        """Upload one file to a year's archive; returns the server's full file list."""
        async with self._client() as client:
            resp = await client.post(
                f"{self.base_url}/archive/{year}/files",
                files={"file": (filename, content)},
                data={"name": filename, "type": file_type.value},
                # multipart boundary is set by httpx
                headers=self._headers(json_body=False),
            )
            data = self._handle_response(resp)
        return [ArchiveFile.model_validate(f) for f in data or []]

    # ─── Settings / dashboard / reports ────────────────────────────────────

    async def get_settings(self) -> ClubSettings:
        data = await self._request("GET", "/settings")
        return ClubSettings.model_validate(data or {})

    async def get_admin_dashboard(self) -> AdminDashboard:
        data = await self._request("GET", "/admin/dashboard")
        return AdminDashboard.model_validate(data or {})

    async def get_event_wise_report(self, rotaract_year: str | None = None) -> EventWiseReport:
        params = {"rotaractYear": rotaract_year} if rotaract_year else None
        data = await self._request("GET", "/reports/event-wise", params=params)
        return EventWiseReport.model_validate(data or {})

    # ─── Binary downloads ──────────────────────────────────────────────────

    def resolve_file_url(self, url: str) -> str:
        """Absolute URLs pass through; relative ones hang off the file host."""
        if url.startswith("http"):
            return url
        return f"{self.file_base_url}{url}"

    async def download(self, url: str, params: dict[str, str] | None = None) -> bytes:
        """GET *url* with the session's bearer token and return the raw body."""
        async with self._client() as client:
            resp = await client.get(
                url, params=params, headers=self.session.auth_headers()
            )
        if not resp.is_success:
            raise self._error_from(resp)
        return resp.content

    async def export_report(self, year: str, kind: str = "pdf") -> bytes:
        if kind not in REPORT_EXPORTS:
            raise ValueError(f"Unknown report export: {kind}")
        return await self.download(
            f"{self.base_url}{REPORT_EXPORTS[kind]}", params={"rotaractYear": year}
        )
