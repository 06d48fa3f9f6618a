from __future__ import annotations

from pydantic import Field, field_validator

from rotaract.app.schemas.archive import CamelModel


class ClubSettings(CamelModel):
    current_rotaract_year: str | None = None


class DashboardSummary(CamelModel):
    total_contributions: float = 0
    total_spending: float = 0
    total_members: int = 0
    total_events: int = 0
    pending_reimbursements: float = 0
    pending_count: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def null_is_zero(cls, v: object) -> object:
        return 0 if v is None else v


class AdminDashboard(CamelModel):
    rotaract_year: str | None = None
    summary: DashboardSummary = Field(default_factory=DashboardSummary)

    @field_validator("summary", mode="before")
    @classmethod
    def missing_summary(cls, v: object) -> object:
        return {} if v is None else v


class EventReportItem(CamelModel):
    name: str | None = None
    estimated_budget: float = 0

    @field_validator("estimated_budget", mode="before")
    @classmethod
    def null_budget(cls, v: object) -> object:
        return 0 if v is None else v


class EventWiseReport(CamelModel):
    events: list[EventReportItem] = Field(default_factory=list)

    @field_validator("events", mode="before")
    @classmethod
    def missing_events(cls, v: object) -> object:
        return [] if v is None else v

    @property
    def total_estimated_budget(self) -> float:
        return sum(e.estimated_budget for e in self.events)


class LoginResponse(CamelModel):
    access_token: str
    refresh_token: str | None = None


class CurrentYearView(CamelModel):
    """Headline figures for the year the admin is working in."""

    year: str = ""
    status: str = "active"
    total_contributions: float = 0
    total_expenses: float = 0
    members: int = 0
    events: int = 0
    pending_reimbursements: float = 0
    pending_approvals: int = 0

    @property
    def has_pending_items(self) -> bool:
        return self.pending_reimbursements > 0 or self.pending_approvals > 0
