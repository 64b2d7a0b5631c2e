from pydantic import BaseModel, Field

from hirelane.schemas.auth import AccountStatusValue


class UserStatusRequest(BaseModel):
    status: AccountStatusValue
    note: str | None = None


class UserStatisticsOut(BaseModel):
    total: int
    by_role: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)


class CompanyStatisticsOut(BaseModel):
    total: int
    by_status: dict[str, int] = Field(default_factory=dict)
    verified: int


class CountsOut(BaseModel):
    total: int
    by_status: dict[str, int] = Field(default_factory=dict)


class StatisticsOut(BaseModel):
    users: UserStatisticsOut
    companies: CompanyStatisticsOut
    jobs: CountsOut
    applications: CountsOut
