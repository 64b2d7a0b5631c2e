from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

CompanyStatusValue = Literal["pending", "active", "inactive"]


class CompanyFields(BaseModel):
    industry: str | None = Field(default=None, max_length=120)
    company_size: str | None = Field(default=None, max_length=40)
    city: str | None = Field(default=None, max_length=120)
    address: str | None = Field(default=None, max_length=300)
    website: str | None = Field(default=None, max_length=300)
    description: str | None = None
    logo: str | None = None
    banner: str | None = None


class CompanyCreateRequest(CompanyFields):
    company_name: str = Field(min_length=1, max_length=200)


class CompanyUpdateRequest(CompanyFields):
    company_name: str | None = Field(default=None, min_length=1, max_length=200)
    expected_version: int | None = Field(default=None, ge=1)


class CompanyOut(CompanyFields):
    id: int
    owner_user_id: int
    company_name: str
    verified: bool
    status: CompanyStatusValue
    job_count: int = 0
    active_job_count: int = 0
    version: int
    created_at: datetime
    updated_at: datetime


class CompanyStatusRequest(BaseModel):
    status: CompanyStatusValue
    note: str | None = None
    expected_version: int | None = Field(default=None, ge=1)


class CompanyVerificationRequest(BaseModel):
    verified: bool
    note: str | None = None
    expected_version: int | None = Field(default=None, ge=1)
