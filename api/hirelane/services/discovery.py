"""Read-only query layer: filtering, ordering and paging over denormalized entity rows.

``query`` is a pure function of its inputs. The :class:`DiscoveryEngine` wraps it with the
per-role visibility scopes and fetches a fresh snapshot from the repository on every call, so
derived counts are always recomputed on read.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal

from hirelane.core.auth import Principal
from hirelane.services.authorization import Action, AuthorizationGate
from hirelane.services.repository import RepositoryValidationError
from hirelane.services.states import (
    AccountStatus,
    ApplicationStatus,
    CompanyStatus,
    JobStatus,
    Role,
)

EntityKind = Literal["job", "company", "application", "user"]
Predicate = Callable[[dict[str, Any]], bool]

SEARCH_FIELDS: dict[str, tuple[str, ...]] = {
    "job": ("title", "company_name", "tags"),
    "company": ("company_name", "industry", "city"),
    "application": ("candidate_name", "candidate_email", "job_title", "company_name"),
    "user": ("full_name", "email"),
}

SORT_FIELDS: dict[str, dict[str, str]] = {
    "job": {
        "created_at": "created_at",
        "salary_min": "salary_min",
        "salary_max": "salary_max",
        "views": "views",
        "applicants": "applicant_count",
        "status": "status",
        "deadline": "deadline",
        "title": "title",
    },
    "company": {
        "created_at": "created_at",
        "name": "company_name",
        "status": "status",
        "jobs": "active_job_count",
    },
    "application": {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "status": "status",
        "expected_salary": "expected_salary",
    },
    "user": {
        "created_at": "created_at",
        "email": "email",
        "name": "full_name",
        "role": "role",
        "status": "account_status",
    },
}


@dataclass(slots=True)
class JobFilter:
    q: str | None = None
    status: str | None = None
    job_type: str | None = None
    experience_level: str | None = None
    city: str | None = None
    company_id: int | None = None
    category_id: int | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    remote: bool | None = None
    featured: bool | None = None
    verified: bool | None = None
    tag: str | None = None


@dataclass(slots=True)
class CompanyFilter:
    q: str | None = None
    status: str | None = None
    verified: bool | None = None
    industry: str | None = None
    city: str | None = None


@dataclass(slots=True)
class ApplicationFilter:
    q: str | None = None
    status: str | None = None
    job_id: int | None = None
    company_id: int | None = None
    candidate_id: int | None = None


@dataclass(slots=True)
class UserFilter:
    q: str | None = None
    role: str | None = None
    status: str | None = None


@dataclass(slots=True)
class SortSpec:
    key: str = "created_at"
    direction: Literal["asc", "desc"] = "desc"


@dataclass(slots=True)
class PageSpec:
    offset: int = 0
    limit: int = 20


@dataclass(slots=True)
class Page:
    items: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    offset: int = 0
    limit: int = 0


def query(
    kind: EntityKind,
    rows: Iterable[dict[str, Any]],
    filter_spec: Any = None,
    sort_spec: SortSpec | None = None,
    page_spec: PageSpec | None = None,
) -> Page:
    matched = filter_rows(kind, rows, filter_spec)
    ordered = sort_rows(kind, matched, sort_spec or SortSpec())
    return paginate(ordered, page_spec or PageSpec())


def filter_rows(kind: EntityKind, rows: Iterable[dict[str, Any]], filter_spec: Any = None) -> list[dict[str, Any]]:
    predicates = _predicates(kind, filter_spec) if filter_spec is not None else []
    return [row for row in rows if all(predicate(row) for predicate in predicates)]


def sort_rows(kind: EntityKind, rows: list[dict[str, Any]], sort_spec: SortSpec) -> list[dict[str, Any]]:
    """Order rows by the sort key; rows missing the key go last and ties break on id ascending."""
    column = SORT_FIELDS[kind].get(sort_spec.key)
    if column is None:
        allowed = ", ".join(sorted(SORT_FIELDS[kind]))
        raise RepositoryValidationError(f"unsupported {kind} sort key: {sort_spec.key} (expected one of {allowed})")
    if sort_spec.direction not in ("asc", "desc"):
        raise RepositoryValidationError(f"unsupported sort direction: {sort_spec.direction}")

    by_id = sorted(rows, key=lambda row: row["id"])
    present = [row for row in by_id if row.get(column) is not None]
    missing = [row for row in by_id if row.get(column) is None]
    # list.sort is stable for reverse=True as well, so equal keys keep id order.
    present.sort(key=lambda row: _sort_value(row[column]), reverse=sort_spec.direction == "desc")
    return present + missing


def paginate(rows: list[dict[str, Any]], page_spec: PageSpec) -> Page:
    offset = max(page_spec.offset, 0)
    limit = max(page_spec.limit, 0)
    return Page(items=rows[offset : offset + limit], total=len(rows), offset=offset, limit=limit)


def count_by(rows: Iterable[dict[str, Any]], column: str, keys: Iterable[str]) -> dict[str, int]:
    counts = Counter(str(row.get(column)) for row in rows)
    return {key: counts.get(key, 0) for key in keys}


def matches_text(row: dict[str, Any], fields: tuple[str, ...], needle: str) -> bool:
    needle = needle.strip().lower()
    if not needle:
        return True
    for name in fields:
        value = row.get(name)
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        if any(needle in str(item).lower() for item in values):
            return True
    return False


def _sort_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, bool):
        return int(value)
    return value


def _equals(column: str, expected: Any) -> Predicate:
    return lambda row: row.get(column) == expected


def _equals_ci(column: str, expected: str) -> Predicate:
    wanted = expected.strip().lower()
    return lambda row: str(row.get(column) or "").strip().lower() == wanted


def _predicates(kind: EntityKind, spec: Any) -> list[Predicate]:
    predicates: list[Predicate] = []
    if spec.q:
        needle = spec.q
        predicates.append(lambda row: matches_text(row, SEARCH_FIELDS[kind], needle))

    if kind == "job":
        predicates.extend(_job_predicates(spec))
    elif kind == "company":
        if spec.status is not None:
            predicates.append(_equals("status", spec.status))
        if spec.verified is not None:
            predicates.append(_equals("verified", spec.verified))
        if spec.industry:
            predicates.append(_equals_ci("industry", spec.industry))
        if spec.city:
            predicates.append(_equals_ci("city", spec.city))
    elif kind == "application":
        if spec.status is not None:
            predicates.append(_equals("status", spec.status))
        if spec.job_id is not None:
            predicates.append(_equals("job_id", spec.job_id))
        if spec.company_id is not None:
            predicates.append(_equals("company_id", spec.company_id))
        if spec.candidate_id is not None:
            predicates.append(_equals("candidate_id", spec.candidate_id))
    elif kind == "user":
        if spec.role is not None:
            predicates.append(_equals("role", spec.role))
        if spec.status is not None:
            predicates.append(_equals("account_status", spec.status))
    return predicates


def _job_predicates(spec: JobFilter) -> list[Predicate]:
    predicates: list[Predicate] = []
    for column in ("status", "job_type", "experience_level", "company_id", "category_id", "remote", "featured"):
        value = getattr(spec, column)
        if value is not None:
            predicates.append(_equals(column, value))
    if spec.verified is not None:
        predicates.append(_equals("company_verified", spec.verified))
    if spec.city:
        predicates.append(_equals_ci("city", spec.city))
    if spec.tag:
        tag = spec.tag.strip().lower()
        predicates.append(lambda row: tag in [str(item).lower() for item in row.get("tags") or []])

    # Salary filters select jobs whose advertised range overlaps the requested one.
    if spec.salary_min is not None:
        floor = spec.salary_min
        predicates.append(lambda row: _upper_bound(row) is None or _upper_bound(row) >= floor)
    if spec.salary_max is not None:
        ceiling = spec.salary_max
        predicates.append(lambda row: _lower_bound(row) is None or _lower_bound(row) <= ceiling)
    if spec.salary_min is not None or spec.salary_max is not None:
        predicates.append(lambda row: row.get("salary_min") is not None or row.get("salary_max") is not None)
    return predicates


def _upper_bound(row: dict[str, Any]) -> int | None:
    return row.get("salary_max") if row.get("salary_max") is not None else row.get("salary_min")


def _lower_bound(row: dict[str, Any]) -> int | None:
    return row.get("salary_min") if row.get("salary_min") is not None else row.get("salary_max")


class DiscoveryEngine:
    def __init__(
        self,
        repository: Any,
        gate: AuthorizationGate,
        *,
        default_page_size: int = 20,
        max_page_size: int = 100,
    ) -> None:
        self.repository = repository
        self.gate = gate
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def page_spec(self, offset: int | None = None, limit: int | None = None) -> PageSpec:
        size = self.default_page_size if limit is None else limit
        return PageSpec(offset=max(offset or 0, 0), limit=min(max(size, 1), self.max_page_size))

    async def search_jobs(
        self,
        actor: Principal | None,
        filter_spec: JobFilter,
        sort_spec: SortSpec,
        page_spec: PageSpec,
        *,
        scope: Literal["public", "mine", "all"] = "public",
    ) -> Page:
        if scope == "all":
            self.gate.enforce(actor, Action.ADMINISTER)
        elif scope == "mine":
            self.gate.enforce(actor, Action.LIST_OWN_JOBS)
        rows = await self.repository.list_job_rows()
        if scope == "public":
            rows = [row for row in rows if row["status"] == JobStatus.ACTIVE.value]
        elif scope == "mine" and actor is not None:
            rows = [row for row in rows if row["owner_user_id"] == actor.actor_id]
        return query("job", rows, filter_spec, sort_spec, page_spec)

    async def search_companies(
        self,
        actor: Principal | None,
        filter_spec: CompanyFilter,
        sort_spec: SortSpec,
        page_spec: PageSpec,
        *,
        scope: Literal["public", "all"] = "public",
    ) -> Page:
        if scope == "all":
            self.gate.enforce(actor, Action.ADMINISTER)
        rows = await self.repository.list_company_rows()
        if scope == "public":
            rows = [row for row in rows if row["status"] == CompanyStatus.ACTIVE.value]
        return query("company", rows, filter_spec, sort_spec, page_spec)

    async def search_applications(
        self,
        actor: Principal,
        filter_spec: ApplicationFilter,
        sort_spec: SortSpec,
        page_spec: PageSpec,
        *,
        scope: Literal["mine", "company", "all"],
    ) -> Page:
        rows = await self._scoped_applications(actor, scope)
        return query("application", rows, filter_spec, sort_spec, page_spec)

    async def application_summary(self, actor: Principal) -> dict[str, Any]:
        """Counts by status over every application the actor can see."""
        scope: Literal["mine", "company", "all"] = {
            Role.CANDIDATE: "mine",
            Role.EMPLOYER: "company",
            Role.ADMIN: "all",
        }[actor.role]
        rows = await self._scoped_applications(actor, scope)
        return {
            "total": len(rows),
            "by_status": count_by(rows, "status", [status.value for status in ApplicationStatus]),
        }

    async def search_users(
        self,
        actor: Principal,
        filter_spec: UserFilter,
        sort_spec: SortSpec,
        page_spec: PageSpec,
    ) -> Page:
        self.gate.enforce(actor, Action.ADMINISTER)
        rows = await self.repository.list_user_rows()
        return query("user", rows, filter_spec, sort_spec, page_spec)

    async def statistics(self, actor: Principal) -> dict[str, Any]:
        self.gate.enforce(actor, Action.ADMINISTER)
        users = await self.repository.list_user_rows()
        companies = await self.repository.list_company_rows()
        jobs = await self.repository.list_job_rows()
        applications = await self.repository.list_application_rows()
        return {
            "users": {
                "total": len(users),
                "by_role": count_by(users, "role", [role.value for role in Role]),
                "by_status": count_by(users, "account_status", [status.value for status in AccountStatus]),
            },
            "companies": {
                "total": len(companies),
                "by_status": count_by(companies, "status", [status.value for status in CompanyStatus]),
                "verified": sum(1 for row in companies if row["verified"]),
            },
            "jobs": {
                "total": len(jobs),
                "by_status": count_by(jobs, "status", [status.value for status in JobStatus]),
            },
            "applications": {
                "total": len(applications),
                "by_status": count_by(applications, "status", [status.value for status in ApplicationStatus]),
            },
        }

    async def _scoped_applications(
        self,
        actor: Principal,
        scope: Literal["mine", "company", "all"],
    ) -> list[dict[str, Any]]:
        if scope == "all":
            self.gate.enforce(actor, Action.ADMINISTER)
        elif scope == "mine":
            self.gate.enforce(actor, Action.LIST_OWN_APPLICATIONS)
        else:
            self.gate.enforce(actor, Action.LIST_COMPANY_APPLICATIONS)

        rows = await self.repository.list_application_rows()
        if scope == "mine":
            return [row for row in rows if row["candidate_id"] == actor.actor_id]
        if scope == "company":
            return [row for row in rows if row["owner_user_id"] == actor.actor_id]
        return rows
