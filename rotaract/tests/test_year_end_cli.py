"""Tests for the year-end command line script."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from rotaract.app.core.session import SessionStore
from rotaract.app.services.archive_files import ArchiveFileService
from rotaract.app.services.year_state import YearStateController
from rotaract.scripts import year_end
from rotaract.tests.conftest import TODAY, archive_record


@pytest.fixture()
def store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "session.json")


@pytest.fixture()
def wired(monkeypatch: pytest.MonkeyPatch, api, storage) -> None:
    """Point the script's service wiring at the fake backend."""

    def _build(store: SessionStore):
        files = ArchiveFileService(api, storage, alert=year_end._fail)
        return api, YearStateController(api, files, today=lambda: TODAY)

    monkeypatch.setattr(year_end, "_build", _build)
    monkeypatch.setattr(year_end, "ClubApiClient", lambda session: api.with_session(session))


def _run(argv: list[str], store: SessionStore) -> int:
    args = year_end.build_parser().parse_args(argv)
    return asyncio.run(args.handler(args, store))


class TestParser:
    def test_close_year_flags(self) -> None:
        args = year_end.build_parser().parse_args(["close-year", "--yes", "--no-carry-over"])
        assert args.yes is True
        assert args.carry_over is False
        assert args.notes == ""

    def test_download_report_kind_choices(self) -> None:
        with pytest.raises(SystemExit):
            year_end.build_parser().parse_args(["download-report", "2024-2025", "--kind", "docx"])


class TestCommands:
    def test_status(self, wired, backend, store, capsys) -> None:
        backend.archives = [archive_record("2025-2026", "active", members=9), archive_record("2024-2025")]
        assert _run(["status"], store) == 0
        out = capsys.readouterr().out
        assert "Current year: 2025-2026" in out
        assert "2024-2025 [archived]" in out

    def test_status_fatal_error(self, wired, backend, store, capsys) -> None:
        backend.fail_archives = True
        assert _run(["status"], store) == 1
        assert "Archive service unavailable" in capsys.readouterr().err

    def test_close_year_with_yes(self, wired, backend, store) -> None:
        backend.archives = [archive_record("2025-2026", "active")]
        assert _run(["close-year", "--yes", "--no-carry-over"], store) == 0
        assert backend.close_bodies == [{"notes": "", "carryOverMembers": False}]

    def test_close_year_declined_checklist(self, wired, backend, store, monkeypatch) -> None:
        answers = iter(["y", "y", "n", "y"])
        monkeypatch.setattr("builtins.input", lambda prompt: next(answers))
        assert _run(["close-year"], store) == 1
        assert backend.close_bodies == []

    def test_start_year_requires_value(self, wired, backend, store, capsys) -> None:
        assert _run(["start-year", ""], store) == 1
        assert "valid Rotaract year" in capsys.readouterr().err
        assert backend.start_bodies == []

    def test_upload_to_explicit_year(self, wired, backend, store, tmp_path: Path) -> None:
        backend.archives = [archive_record("2024-2025")]
        path = tmp_path / "bills.zip"
        path.write_bytes(b"zip")
        assert _run(["upload", str(path), "--year", "2024-2025"], store) == 0
        assert backend.uploads[0]["type"] == "bills_archive"

    def test_download_report(self, wired, store, storage) -> None:
        assert _run(["download-report", "2024-2025", "--kind", "excel"], store) == 0
        assert (storage.root / "financial-report-2024-2025.xlsx").exists()

    def test_login_and_logout(self, wired, store, monkeypatch) -> None:
        monkeypatch.setattr(year_end.getpass, "getpass", lambda prompt: "correct-horse")
        assert _run(["login", "admin@club.org"], store) == 0
        assert store.load().access_token == "access-1"
        assert _run(["logout"], store) == 0
        assert not store.path.exists()

    def test_failed_login_keeps_no_session(self, wired, store, monkeypatch) -> None:
        monkeypatch.setattr(year_end.getpass, "getpass", lambda prompt: "nope")
        assert _run(["login", "admin@club.org"], store) == 1
        assert not store.path.exists()
