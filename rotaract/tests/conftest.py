"""Shared test fixtures.

Every test talks to an in-process FastAPI stand-in for the club backend,
reached through ``httpx.ASGITransport`` so no sockets are opened. The fake
keeps its own archive records and logs every request it receives.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from rotaract.app.core.session import Session
from rotaract.app.services.api_client import ClubApiClient
from rotaract.app.services.archive_files import ArchiveFileService
from rotaract.app.services.file_service import DownloadStorage
from rotaract.app.services.year_state import YearStateController

BASE_URL = "http://testserver/api"
FILE_BASE_URL = "http://testserver"
TODAY = date(2026, 10, 19)


def ok(data: Any, message: str = "OK") -> JSONResponse:
    return JSONResponse({"success": True, "message": message, "data": data})


def fail(status_code: int, message: str, errors: list[dict[str, str]] | None = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(body, status_code=status_code)


def archive_record(
    year: str,
    status: str = "archived",
    *,
    contributions: float = 0,
    expenses: float = 0,
    members: int = 0,
    events: int = 0,
    files: list[dict[str, str]] | None = None,
) -> dict[str, Any]:
    return {
        "_id": f"arch-{year}",
        "rotaractYear": year,
        "status": status,
        "summary": {
            "totalContributions": contributions,
            "totalExpenses": expenses,
            "totalMembers": members,
            "totalEvents": events,
        },
        "createdAt": "2025-07-01T00:00:00Z",
        "closedAt": "2026-06-30T12:00:00Z" if status == "archived" else None,
        "files": files or [],
    }


# ─── Fake backend ────────────────────────────────────────────────────────────


async def _hold(entered: asyncio.Event | None, gate: asyncio.Event | None) -> None:
    if entered is not None:
        entered.set()
    if gate is not None:
        await gate.wait()


class FakeBackend:
    """Minimal club backend: archive rollover, settings, dashboard, reports."""

    def __init__(self) -> None:
        self.archives: list[dict[str, Any]] = []
        self.settings: dict[str, Any] | None = {"currentRotaractYear": "2025-2026"}
        self.dashboard: dict[str, Any] | None = None
        self.events: list[dict[str, Any]] = []
        self.calls: list[tuple[str, str]] = []
        self.auth_headers: list[str | None] = []
        self.close_bodies: list[dict[str, Any]] = []
        self.start_bodies: list[dict[str, Any]] = []
        self.uploads: list[dict[str, Any]] = []

        self.fail_archives = False
        self.fail_settings = False
        self.fail_dashboard = False
        self.fail_event_report = False
        self.close_error: str | None = None
        self.start_error: str | None = None
        self.upload_error: str | None = None
        self.report_error = False

        # Set by tests that need to hold a request open mid-flight
        self.close_entered: asyncio.Event | None = None
        self.close_gate: asyncio.Event | None = None
        self.start_entered: asyncio.Event | None = None
        self.start_gate: asyncio.Event | None = None
        self.upload_entered: asyncio.Event | None = None
        self.upload_gate: asyncio.Event | None = None

        self.app = self._build_app()

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p in self.calls if m == method and p == path)

    def _find(self, year: str) -> dict[str, Any] | None:
        return next((a for a in self.archives if a["rotaractYear"] == year), None)

    def _build_app(self) -> FastAPI:
        backend = self

        async def record(request: Request) -> None:
            backend.calls.append((request.method, request.url.path))
            backend.auth_headers.append(request.headers.get("authorization"))

        app = FastAPI(dependencies=[Depends(record)])

        @app.post("/api/auth/admin-login")
        async def admin_login(request: Request) -> JSONResponse:
            body = await request.json()
            if body.get("password") != "correct-horse":
                return fail(401, "Invalid credentials")
            return ok({"accessToken": "access-1", "refreshToken": "refresh-1"})

        @app.post("/api/auth/logout")
        async def logout() -> JSONResponse:
            return ok(None, "Logged out")

        @app.get("/api/archive")
        async def list_archives() -> JSONResponse:
            if backend.fail_archives:
                return fail(500, "Archive service unavailable")
            return ok(backend.archives)

        @app.post("/api/archive/close-year")
        async def close_year(request: Request) -> JSONResponse:
            body = await request.json()
            backend.close_bodies.append(body)
            await _hold(backend.close_entered, backend.close_gate)
            if backend.close_error:
                return fail(400, backend.close_error)
            for a in backend.archives:
                if a["status"] == "active":
                    a["status"] = "archived"
                    a["closedAt"] = datetime.now(timezone.utc).isoformat()
            return ok(None, "Year closed")

        @app.post("/api/archive/start-new-year")
        async def start_new_year(request: Request) -> JSONResponse:
            body = await request.json()
            backend.start_bodies.append(body)
            await _hold(backend.start_entered, backend.start_gate)
            if backend.start_error:
                return fail(400, backend.start_error)
            backend.archives.insert(0, archive_record(body["newYear"], "active"))
            backend.settings = {"currentRotaractYear": body["newYear"]}
            return ok(None, "New year started")

        @app.get("/api/archive/{year}")
        async def get_archive(year: str) -> JSONResponse:
            archive = backend._find(year)
            if archive is None:
                return fail(404, "Archive not found")
            return ok(archive)

        @app.post("/api/archive/{year}/files")
        async def add_file(year: str, request: Request) -> JSONResponse:
            form = await request.form()
            upload = form["file"]
            content = await upload.read()  # type: ignore[union-attr]
            backend.uploads.append({
                "year": year,
                "name": form["name"],
                "type": form["type"],
                "content": content,
            })
            await _hold(backend.upload_entered, backend.upload_gate)
            if backend.upload_error:
                return fail(400, backend.upload_error)
            archive = backend._find(year)
            if archive is None:
                return fail(404, "Archive not found")
            archive["files"].append({
                "name": form["name"],
                "type": form["type"],
                "url": f"/uploads/{form['name']}",
            })
            return ok(archive["files"])

        @app.get("/api/settings")
        async def get_settings() -> JSONResponse:
            if backend.fail_settings:
                return fail(500, "Settings unavailable")
            return ok(backend.settings)

        @app.get("/api/admin/dashboard")
        async def admin_dashboard() -> JSONResponse:
            if backend.fail_dashboard:
                return fail(500, "Dashboard unavailable")
            return ok(backend.dashboard)

        @app.get("/api/reports/event-wise")
        async def event_wise() -> JSONResponse:
            if backend.fail_event_report:
                return fail(500, "Report unavailable")
            return ok({"events": backend.events})

        @app.get("/api/reports/export/{kind}")
        async def export(kind: str, request: Request) -> Response:
            if backend.report_error or not request.headers.get("authorization"):
                return fail(403, "Forbidden")
            year = request.query_params.get("rotaractYear", "")
            return Response(content=f"{kind}:{year}".encode(), media_type="application/octet-stream")

        @app.get("/uploads/{name}")
        async def uploaded(name: str) -> Response:
            for a in backend.archives:
                for f in a["files"]:
                    if f["name"] == name:
                        return Response(content=f"file:{name}".encode())
            return fail(404, "File not found")

        return app


# ─── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def api(backend: FakeBackend) -> ClubApiClient:
    return ClubApiClient(
        Session(access_token="test-token"),
        BASE_URL,
        file_base_url=FILE_BASE_URL,
        transport=httpx.ASGITransport(app=backend.app),
    )


@pytest.fixture()
def storage(tmp_path: Path) -> DownloadStorage:
    return DownloadStorage(tmp_path / "downloads")


@pytest.fixture()
def alerts() -> list[str]:
    return []


@pytest.fixture()
def file_service(
    api: ClubApiClient, storage: DownloadStorage, alerts: list[str]
) -> ArchiveFileService:
    return ArchiveFileService(api, storage, alert=alerts.append)


@pytest.fixture()
def controller(api: ClubApiClient, file_service: ArchiveFileService) -> YearStateController:
    return YearStateController(api, file_service, today=lambda: TODAY)
