"""Close-year and start-new-year transitions.

Both are single-flight. After a successful call the controller re-resolves
the year state and the transition resets its own transient input; after a
failure the input is kept so the admin can correct and resubmit.

Closing a year:
    IDLE -> CHECKLIST_PENDING -> SUBMITTING -> (SUCCEEDED | FAILED)

Starting a year:
    IDLE -> FORM_EDITING -> SUBMITTING -> (SUCCEEDED | FAILED)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, fields
from enum import Enum

import httpx
from pydantic import ValidationError

from rotaract.app.core.single_flight import ActionGuard
from rotaract.app.schemas.archive import CloseYearRequest, StartNewYearRequest
from rotaract.app.services.api_client import ApiError
from rotaract.app.services.year_state import YearStateController

logger = logging.getLogger(__name__)

Alert = Callable[[str], None]

YEAR_FORMAT = re.compile(r"^\d{4}-\d{4}$")
MISSING_YEAR_MESSAGE = "Please enter a valid Rotaract year before starting a new year."

_SUBMIT_ERRORS = (ApiError, httpx.HTTPError)


class TransitionState(str, Enum):
    IDLE = "idle"
    CHECKLIST_PENDING = "checklist_pending"
    FORM_EDITING = "form_editing"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_OPEN_STATES = {
    TransitionState.CHECKLIST_PENDING,
    TransitionState.FORM_EDITING,
    TransitionState.SUBMITTING,
    TransitionState.FAILED,
}


def _log_alert(message: str) -> None:
    logger.error(message)


@dataclass
class CloseYearChecklist:
    """Advisory confirmations; the backend still validates the close itself."""

    export_data: bool = False
    verify_amounts: bool = False
    notify_members: bool = False
    backup_complete: bool = False

    @classmethod
    def items(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @property
    def confirmed_count(self) -> int:
        return sum(1 for name in self.items() if getattr(self, name))

    @property
    def all_confirmed(self) -> bool:
        return self.confirmed_count == len(self.items())

    def set(self, item: str, value: bool = True) -> None:
        if item not in self.items():
            raise ValueError(f"Unknown checklist item: {item}")
        setattr(self, item, value)

    def reset(self) -> None:
        for name in self.items():
            setattr(self, name, False)


class _Transition:
    editing_state = TransitionState.IDLE

    def __init__(self, controller: YearStateController, alert: Alert | None = None) -> None:
        self.controller = controller
        self.alert = alert or _log_alert
        self.guard = ActionGuard()
        self.state = TransitionState.IDLE
        self.last_error: str | None = None

    @property
    def is_open(self) -> bool:
        return self.state in _OPEN_STATES

    @property
    def action_loading(self) -> bool:
        return self.guard.in_flight

    def cancel(self) -> None:
        if not self.guard.in_flight:
            self.state = TransitionState.IDLE

    def _fail(self, message: str) -> None:
        self.state = TransitionState.FAILED
        self.last_error = message
        self.alert(message)


class CloseYearTransition(_Transition):
    """Lock the current year's data and have the backend archive it."""

    editing_state = TransitionState.CHECKLIST_PENDING

    def __init__(self, controller: YearStateController, alert: Alert | None = None) -> None:
        super().__init__(controller, alert)
        self.checklist = CloseYearChecklist()
        self.carry_over_members = True
        # Sent with the request; no input populates it yet
        self.notes = ""

    def open(self) -> None:
        self.checklist.reset()
        self.last_error = None
        self.state = self.editing_state

    def confirm(self, item: str, value: bool = True) -> None:
        self.checklist.set(item, value)

    @property
    def can_submit(self) -> bool:
        return (
            self.is_open
            and self.checklist.all_confirmed
            and not self.guard.in_flight
        )

    async def submit(self) -> bool:
        if not self.can_submit:
            return False
        with self.guard.hold():
            self.state = TransitionState.SUBMITTING
            request = CloseYearRequest(
                notes=self.notes, carry_over_members=self.carry_over_members
            )
            try:
                await self.controller.api.close_year(request)
            except _SUBMIT_ERRORS as exc:
                self._fail(str(exc) or "Failed to close year")
                return False
            logger.info("Closed Rotaract year %s", self.controller.state.current_year.year)
            await self.controller.resolve()
            self.checklist.reset()
            self.notes = ""
            self.carry_over_members = True
            self.last_error = None
            self.state = TransitionState.SUCCEEDED
        return True


class StartNewYearTransition(_Transition):
    """Establish a new current year, optionally carrying over active members."""

    editing_state = TransitionState.FORM_EDITING

    def __init__(self, controller: YearStateController, alert: Alert | None = None) -> None:
        super().__init__(controller, alert)
        self._reset_form()

    def _reset_form(self) -> None:
        self.new_year = ""
        self.theme = ""
        self.carry_over_members = True
        # Display-only; not part of the request
        self.reset_contributions = True

    def open(self) -> None:
        self.last_error = None
        self.state = self.editing_state

    @property
    def can_submit(self) -> bool:
        return self.is_open and not self.guard.in_flight

    async def submit(self) -> bool:
        if not self.can_submit:
            return False
        try:
            request = StartNewYearRequest(
                new_year=self.new_year,
                theme=self.theme,
                carry_over_members=self.carry_over_members,
            )
        except ValidationError:
            self._fail(MISSING_YEAR_MESSAGE)
            return False
        if not YEAR_FORMAT.match(request.new_year):
            logger.warning("Rotaract year %r is not in YYYY-YYYY form", request.new_year)

        with self.guard.hold():
            self.state = TransitionState.SUBMITTING
            try:
                await self.controller.api.start_new_year(request)
            except _SUBMIT_ERRORS as exc:
                self._fail(str(exc) or "Failed to start new year")
                return False
            logger.info("Started Rotaract year %s", request.new_year)
            await self.controller.resolve()
            self._reset_form()
            self.last_error = None
            self.state = TransitionState.SUCCEEDED
        return True
