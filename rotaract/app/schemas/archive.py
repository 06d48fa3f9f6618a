from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class ArchiveStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class ArchiveFileType(str, Enum):
    FINANCIAL_REPORT = "financial_report"
    MEMBER_LIST = "member_list"
    BILLS_ARCHIVE = "bills_archive"
    OTHER = "other"


class YearSummary(CamelModel):
    total_contributions: float = Field(default=0, ge=0)
    total_expenses: float = Field(default=0, ge=0)
    total_members: int = Field(default=0, ge=0)
    total_events: int = Field(default=0, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def null_is_zero(cls, v: object) -> object:
        return 0 if v is None else v


class ArchiveFile(CamelModel):
    name: str = ""
    type: ArchiveFileType = ArchiveFileType.OTHER
    url: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def unknown_type_is_other(cls, v: object) -> object:
        if v in {t.value for t in ArchiveFileType}:
            return v
        return ArchiveFileType.OTHER


class YearArchive(CamelModel):
    rotaract_year: str
    status: ArchiveStatus = ArchiveStatus.ARCHIVED
    summary: YearSummary = Field(default_factory=YearSummary)
    closed_at: datetime | None = None
    created_at: datetime | None = None
    files: list[ArchiveFile] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def unknown_status_is_archived(cls, v: object) -> object:
        if v in {s.value for s in ArchiveStatus}:
            return v
        return ArchiveStatus.ARCHIVED

    @field_validator("summary", mode="before")
    @classmethod
    def missing_summary(cls, v: object) -> object:
        return {} if v is None else v

    @field_validator("files", mode="before")
    @classmethod
    def missing_files(cls, v: object) -> object:
        return [] if v is None else v

    @property
    def locked_on(self) -> datetime | None:
        """Date shown as the lock date in the archive history."""
        return self.closed_at or self.created_at


class CloseYearRequest(CamelModel):
    notes: str = ""
    carry_over_members: bool = True


class StartNewYearRequest(CamelModel):
    new_year: str
    theme: str = ""
    carry_over_members: bool = True

    @field_validator("new_year")
    @classmethod
    def new_year_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Rotaract year must not be empty")
        return v.strip()
