from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

JobStatusValue = Literal["pending", "active", "inactive", "closed", "rejected"]
JobType = Literal["full-time", "part-time", "contract", "internship", "freelance"]
ExperienceLevel = Literal["entry", "junior", "mid", "senior", "lead"]
JobSortKey = Literal["created_at", "salary_min", "salary_max", "views", "applicants", "status", "deadline", "title"]


class JobFields(BaseModel):
    description: str | None = None
    requirements: str | None = None
    benefits: str | None = None
    location: str | None = Field(default=None, max_length=200)
    city: str | None = Field(default=None, max_length=120)
    job_type: JobType | None = None
    experience_level: ExperienceLevel | None = None
    salary_min: int | None = Field(default=None, ge=0)
    salary_max: int | None = Field(default=None, ge=0)
    deadline: date | None = None
    category_id: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_salary_range(self):
        if self.salary_min is not None and self.salary_max is not None and self.salary_min > self.salary_max:
            raise ValueError("salary_min must not exceed salary_max")
        return self


class JobCreateRequest(JobFields):
    title: str = Field(min_length=1, max_length=200)
    tags: list[str] = Field(default_factory=list, max_length=30)
    remote: bool = False
    featured: bool = False


class JobUpdateRequest(JobFields):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    tags: list[str] | None = Field(default=None, max_length=30)
    remote: bool | None = None
    featured: bool | None = None
    expected_version: int | None = Field(default=None, ge=1)


class JobOut(JobFields):
    id: int
    company_id: int
    company_name: str
    company_verified: bool = False
    company_status: str | None = None
    company_logo: str | None = None
    category_name: str | None = None
    owner_user_id: int
    title: str
    tags: list[str] = Field(default_factory=list)
    remote: bool = False
    featured: bool = False
    status: JobStatusValue
    views: int = 0
    applicant_count: int = 0
    version: int
    created_at: datetime
    updated_at: datetime


class JobStatusRequest(BaseModel):
    status: JobStatusValue
    note: str | None = None
    expected_version: int | None = Field(default=None, ge=1)


class JobModerationRequest(BaseModel):
    note: str | None = None
    expected_version: int | None = Field(default=None, ge=1)
