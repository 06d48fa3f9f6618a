"""Year-end archive administration from the command line.

Usage:
    python -m rotaract.scripts.year_end login EMAIL
    python -m rotaract.scripts.year_end status
    python -m rotaract.scripts.year_end close-year [--yes] [--no-carry-over]
    python -m rotaract.scripts.year_end start-year 2026-2027 [--theme TEXT]
    python -m rotaract.scripts.year_end files [YEAR]
    python -m rotaract.scripts.year_end upload PATH [--year YEAR]
    python -m rotaract.scripts.year_end download-report YEAR [--kind pdf|excel|bills]
    python -m rotaract.scripts.year_end download-file YEAR NAME
    python -m rotaract.scripts.year_end logout
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

import httpx

from rotaract.app.core.config import settings
from rotaract.app.core.session import Session, SessionStore
from rotaract.app.schemas.reports import CurrentYearView
from rotaract.app.services.api_client import REPORT_EXPORTS, ApiError, ClubApiClient
from rotaract.app.services.archive_files import ArchiveFileService
from rotaract.app.services.file_service import DownloadStorage
from rotaract.app.services.transitions import (
    CloseYearChecklist,
    CloseYearTransition,
    StartNewYearTransition,
)
from rotaract.app.services.year_state import YearStateController

logger = logging.getLogger(__name__)

_CHECKLIST_PROMPTS: dict[str, str] = {
    "export_data": "All financial data has been exported",
    "verify_amounts": "All amounts have been verified",
    "notify_members": "Members have been notified",
    "backup_complete": "A backup has been completed",
}


def _banner(title: str) -> None:
    width = 60
    print()
    print("=" * width)
    print(f"  {title}")
    print("=" * width)


def _step(msg: str) -> None:
    print(f"  -> {msg}")


def _ok(msg: str) -> None:
    print(f"  [OK] {msg}")


def _fail(msg: str) -> None:
    print(f"  [FAIL] {msg}", file=sys.stderr)


def _print_year(view: CurrentYearView) -> None:
    _step(f"Current year: {view.year or 'unknown'} ({view.status})")
    _step(f"Total contributions: {view.total_contributions:,.0f}")
    _step(f"Total expenses: {view.total_expenses:,.0f}")
    _step(f"Active members: {view.members}")
    _step(f"Events completed: {view.events}")
    if view.has_pending_items:
        _fail(
            f"{view.pending_approvals} pending expense approvals and "
            f"{view.pending_reimbursements:,.0f} in pending reimbursements. "
            "Resolve these before closing the year."
        )


def _build(store: SessionStore) -> tuple[ClubApiClient, YearStateController]:
    api = ClubApiClient(store.load())
    files = ArchiveFileService(api, DownloadStorage(), alert=_fail)
    return api, YearStateController(api, files)


# ─── Commands ─────────────────────────────────────────────────────────────────


async def cmd_login(args: argparse.Namespace, store: SessionStore) -> int:
    password = getpass.getpass("Password: ")
    api = ClubApiClient(Session())
    try:
        session = await api.admin_login(args.email, password)
    except (ApiError, httpx.HTTPError) as exc:
        _fail(str(exc) or "Login failed")
        return 1
    store.save(session)
    _ok(f"Signed in as {args.email}")
    return 0


async def cmd_logout(args: argparse.Namespace, store: SessionStore) -> int:
    api = ClubApiClient(store.load())
    if api.session.is_authenticated:
        try:
            await api.logout()
        except (ApiError, httpx.HTTPError) as exc:
            logger.warning("Logout request failed: %s", exc)
    store.clear()
    _ok("Signed out")
    return 0


async def cmd_status(args: argparse.Namespace, store: SessionStore) -> int:
    _, controller = _build(store)
    state = await controller.resolve()
    if state.error:
        _fail(state.error)
        return 1
    _banner("Year-End Archive")
    _print_year(state.current_year)
    if state.archives:
        print()
        for archive in state.archives:
            locked = archive.locked_on.date().isoformat() if archive.locked_on else "n/a"
            _step(
                f"{archive.rotaract_year} [{archive.status.value}] locked {locked} | "
                f"members {archive.summary.total_members}, "
                f"events {archive.summary.total_events}"
            )
    return 0


def _confirm_checklist(checklist: CloseYearChecklist, assume_yes: bool) -> None:
    for item in checklist.items():
        if assume_yes:
            checklist.set(item)
            continue
        answer = input(f"  {_CHECKLIST_PROMPTS[item]}? [y/N] ").strip().lower()
        checklist.set(item, answer in {"y", "yes"})


async def cmd_close_year(args: argparse.Namespace, store: SessionStore) -> int:
    _, controller = _build(store)
    state = await controller.resolve()
    if state.error:
        _fail(state.error)
        return 1
    _banner(f"Close Year {state.current_year.year}")
    _print_year(state.current_year)

    transition = CloseYearTransition(controller, alert=_fail)
    transition.open()
    transition.carry_over_members = args.carry_over
    transition.notes = args.notes
    _confirm_checklist(transition.checklist, args.yes)
    if not transition.can_submit:
        _fail(
            f"{transition.checklist.confirmed_count} of "
            f"{len(transition.checklist.items())} confirmations given; not closing."
        )
        return 1
    if not await transition.submit():
        return 1
    _ok("Year closed and archived")
    _print_year(controller.state.current_year)
    return 0


async def cmd_start_year(args: argparse.Namespace, store: SessionStore) -> int:
    _, controller = _build(store)
    transition = StartNewYearTransition(controller, alert=_fail)
    transition.open()
    transition.new_year = args.year
    transition.theme = args.theme
    transition.carry_over_members = args.carry_over
    if not await transition.submit():
        return 1
    _ok(f"Started Rotaract year {args.year}")
    _print_year(controller.state.current_year)
    return 0


async def cmd_files(args: argparse.Namespace, store: SessionStore) -> int:
    _, controller = _build(store)
    if args.year:
        files = await controller.select_year(args.year)
        year = args.year
    else:
        state = await controller.resolve()
        if state.error:
            _fail(state.error)
            return 1
        files, year = state.files, state.selected_year
    _banner(f"Archive files for {year}")
    if not files:
        _step("No files archived")
    for f in files:
        _step(f"{f.name} [{f.type.value}]")
    return 0


async def cmd_upload(args: argparse.Namespace, store: SessionStore) -> int:
    _, controller = _build(store)
    if args.year:
        await controller.select_year(args.year)
    else:
        state = await controller.resolve()
        if state.error:
            _fail(state.error)
            return 1
    if not await controller.upload_file(Path(args.path)):
        return 1
    _ok(f"Uploaded {Path(args.path).name} to {controller.state.selected_year}")
    for f in controller.state.files:
        _step(f"{f.name} [{f.type.value}]")
    return 0


async def cmd_download_report(args: argparse.Namespace, store: SessionStore) -> int:
    _, controller = _build(store)
    path = await controller.files.download_report(args.year, args.kind)
    if path is None:
        return 1
    _ok(f"Saved {path}")
    return 0


async def cmd_download_file(args: argparse.Namespace, store: SessionStore) -> int:
    _, controller = _build(store)
    files = await controller.select_year(args.year)
    match = next((f for f in files if f.name == args.name), None)
    if match is None:
        _fail(f"No file named {args.name!r} in {args.year}")
        return 1
    path = await controller.files.download_file(match)
    if path is None:
        return 1
    _ok(f"Saved {path}")
    return 0


# ─── Entry point ──────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="year_end", description="Rotaract year-end archive administration"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="sign in as an administrator")
    p.add_argument("email")
    p.set_defaults(handler=cmd_login)

    p = sub.add_parser("logout", help="sign out and forget the stored token")
    p.set_defaults(handler=cmd_logout)

    p = sub.add_parser("status", help="show the current year and archive history")
    p.set_defaults(handler=cmd_status)

    p = sub.add_parser("close-year", help="lock and archive the current year")
    p.add_argument("--yes", action="store_true", help="confirm every checklist item")
    p.add_argument("--no-carry-over", dest="carry_over", action="store_false")
    p.add_argument("--notes", default="")
    p.set_defaults(handler=cmd_close_year)

    p = sub.add_parser("start-year", help="start a new Rotaract year")
    p.add_argument("year", help="e.g. 2026-2027")
    p.add_argument("--theme", default="")
    p.add_argument("--no-carry-over", dest="carry_over", action="store_false")
    p.set_defaults(handler=cmd_start_year)

    p = sub.add_parser("files", help="list archived files for a year")
    p.add_argument("year", nargs="?")
    p.set_defaults(handler=cmd_files)

    p = sub.add_parser("upload", help="attach a file to a year's archive")
    p.add_argument("path")
    p.add_argument("--year")
    p.set_defaults(handler=cmd_upload)

    p = sub.add_parser("download-report", help="download a year's report export")
    p.add_argument("year")
    p.add_argument("--kind", choices=sorted(REPORT_EXPORTS), default="pdf")
    p.set_defaults(handler=cmd_download_report)

    p = sub.add_parser("download-file", help="download one archived file")
    p.add_argument("year")
    p.add_argument("name")
    p.set_defaults(handler=cmd_download_file)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(args.handler(args, SessionStore()))


if __name__ == "__main__":
    sys.exit(main())
