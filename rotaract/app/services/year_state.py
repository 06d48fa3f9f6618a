"""Current-year resolution.

Three sources may disagree about which Rotaract year is current:

1. the archive list (primary; its failure is fatal),
2. the global settings record,
3. the live admin dashboard aggregation.

Which archive counts as "active" and which label wins are expressed as
ordered rule tuples so each policy can be exercised on its own.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import TypeVar

import httpx
from pydantic import ValidationError

from rotaract.app.core.single_flight import ActionGuard
from rotaract.app.schemas.archive import ArchiveFile, ArchiveStatus, YearArchive
from rotaract.app.schemas.reports import AdminDashboard, ClubSettings, CurrentYearView
from rotaract.app.services.api_client import ApiError, ClubApiClient
from rotaract.app.services.archive_files import ArchiveFileService

logger = logging.getLogger(__name__)

T = TypeVar("T")

ArchiveRule = Callable[[list[YearArchive]], YearArchive | None]
YearRule = Callable[["YearSources"], str | None]

_FETCH_ERRORS = (ApiError, httpx.HTTPError, ValidationError)


# ─── Active archive policy ───────────────────────────────────────────────────


def first_active(archives: list[YearArchive]) -> YearArchive | None:
    return next((a for a in archives if a.status is ArchiveStatus.ACTIVE), None)


def first_listed(archives: list[YearArchive]) -> YearArchive | None:
    return archives[0] if archives else None


ACTIVE_ARCHIVE_RULES: tuple[ArchiveRule, ...] = (first_active, first_listed)


def select_active_archive(
    archives: list[YearArchive],
    rules: tuple[ArchiveRule, ...] = ACTIVE_ARCHIVE_RULES,
) -> YearArchive | None:
    """Apply *rules* in order; the first non-``None`` match wins."""
    for rule in rules:
        found = rule(archives)
        if found is not None:
            return found
    return None


# ─── Year label policy ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class YearSources:
    active_archive: YearArchive | None
    club_settings: ClubSettings | None
    today: date


def from_active_archive(sources: YearSources) -> str | None:
    return sources.active_archive.rotaract_year if sources.active_archive else None


def from_settings(sources: YearSources) -> str | None:
    if sources.club_settings is None:
        return None
    return sources.club_settings.current_rotaract_year or None


def from_calendar(sources: YearSources) -> str | None:
    return str(sources.today.year)


YEAR_LABEL_RULES: tuple[YearRule, ...] = (from_active_archive, from_settings, from_calendar)


def resolve_year_label(
    sources: YearSources,
    rules: tuple[YearRule, ...] = YEAR_LABEL_RULES,
) -> str:
    for rule in rules:
        label = rule(sources)
        if label:
            return label
    return str(sources.today.year)


# ─── Display metrics ─────────────────────────────────────────────────────────


def current_year_view(
    year: str,
    active_archive: YearArchive | None,
    dashboard: AdminDashboard | None,
) -> CurrentYearView:
    """Pick headline figures: live dashboard, then archive summary, then zeros."""
    if dashboard is not None and dashboard.rotaract_year == year:
        s = dashboard.summary
        return CurrentYearView(
            year=year,
            status=ArchiveStatus.ACTIVE.value,
            total_contributions=s.total_contributions,
            total_expenses=s.total_spending,
            members=s.total_members,
            events=s.total_events,
            pending_reimbursements=s.pending_reimbursements,
            pending_approvals=s.pending_count,
        )
    if active_archive is not None:
        s = active_archive.summary
        return CurrentYearView(
            year=active_archive.rotaract_year,
            status=active_archive.status.value,
            total_contributions=s.total_contributions,
            total_expenses=s.total_expenses,
            members=s.total_members,
            events=s.total_events,
        )
    return CurrentYearView(year=year)


# ─── Controller ──────────────────────────────────────────────────────────────


@dataclass
class YearState:
    archives: list[YearArchive] = field(default_factory=list)
    current_year: CurrentYearView = field(default_factory=CurrentYearView)
    selected_year: str = ""
    files: list[ArchiveFile] = field(default_factory=list)
    loading: bool = False
    error: str | None = None


class YearStateController:
    """Holds the resolved year state and the per-year file view.

    :meth:`resolve` is never retried automatically; callers re-invoke it.
    """

    def __init__(
        self,
        api: ClubApiClient,
        files: ArchiveFileService | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.api = api
        self.files = files or ArchiveFileService(api)
        self.today = today
        self.state = YearState()
        self.upload_guard = ActionGuard()

    @staticmethod
    async def _optional(call: Awaitable[T], source: str) -> T | None:
        try:
            return await call
        except _FETCH_ERRORS as exc:
            logger.warning("%s unavailable, falling back: %s", source, exc)
            return None

    async def resolve(self) -> YearState:
        """Re-resolve the current year, its metrics and its file list."""
        state = self.state
        state.loading = True
        state.error = None
        try:
            # Wait for all three before deciding; only the archive list is fatal
            archives, club_settings, dashboard = await asyncio.gather(
                self.api.list_archives(),
                self._optional(self.api.get_settings(), "Settings"),
                self._optional(self.api.get_admin_dashboard(), "Dashboard"),
                return_exceptions=True,
            )
            for result in (club_settings, dashboard):
                if isinstance(result, BaseException):
                    raise result
            if isinstance(archives, _FETCH_ERRORS):
                logger.error("Archive list unavailable: %s", archives)
                state.error = str(archives) or "Failed to load archive data"
                return state
            if isinstance(archives, BaseException):
                raise archives

            state.archives = archives
            active = select_active_archive(archives)
            year = resolve_year_label(YearSources(active, club_settings, self.today()))
            state.current_year = current_year_view(year, active, dashboard)

            report = await self._optional(
                self.api.get_event_wise_report(year), "Event-wise report"
            )
            if report is not None:
                state.current_year.total_expenses = report.total_estimated_budget

            state.selected_year = year
            state.files = await self.files.list_files(year)
            logger.info("Resolved current Rotaract year %s", year)
            return state
        finally:
            state.loading = False

    async def select_year(self, year: str) -> list[ArchiveFile]:
        self.state.selected_year = year
        self.state.files = await self.files.list_files(year)
        return self.state.files

    async def upload_file(self, path: Path) -> bool:
        """Attach *path* to the selected year; the server's list replaces ours."""
        year = self.state.selected_year
        if not year or self.upload_guard.in_flight:
            return False
        with self.upload_guard.hold():
            files = await self.files.upload_path(year, path)
        if files is None:
            return False
        self.state.files = files
        return True
