from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ApplicationStatusValue = Literal[
    "pending",
    "reviewing",
    "shortlisted",
    "interviewed",
    "offered",
    "accepted",
    "rejected",
    "withdrawn",
]
ApplicationSortKey = Literal["created_at", "updated_at", "status", "expected_salary"]


class ApplyRequest(BaseModel):
    job_id: int = Field(ge=1)
    cv_file: str = Field(min_length=1, max_length=500)
    cover_letter: str | None = None
    expected_salary: int | None = Field(default=None, ge=0)


class ApplicationOut(BaseModel):
    id: int
    job_id: int
    candidate_id: int
    cv_file: str
    cover_letter: str | None = None
    expected_salary: int | None = None
    status: ApplicationStatusValue
    notes: str | None = None
    reviewed_at: datetime | None = None
    candidate_name: str | None = None
    candidate_email: str | None = None
    job_title: str
    company_id: int
    company_name: str
    version: int
    created_at: datetime
    updated_at: datetime


class ApplicationStatusRequest(BaseModel):
    status: ApplicationStatusValue
    note: str | None = None
    expected_version: int | None = Field(default=None, ge=1)


class WithdrawRequest(BaseModel):
    note: str | None = None
    expected_version: int | None = Field(default=None, ge=1)


class ApplicationSummaryOut(BaseModel):
    total: int
    by_status: dict[str, int] = Field(default_factory=dict)
