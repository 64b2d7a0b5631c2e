"""Authorization gate: decides whether an actor may perform an action on a target.

The gate is the single place where role, ownership and state preconditions are evaluated. It
returns a :class:`Decision` instead of raising so that callers can also use it to answer
"could this actor do X?" questions without side effects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping

from hirelane.core.auth import Principal
from hirelane.services.repository import RepositoryConflictError, RepositoryForbiddenError, blocks_reapplication
from hirelane.services.states import (
    APPLICATION_TRANSITIONS,
    COMPANY_TRANSITIONS,
    JOB_TRANSITIONS,
    ApplicationStatus,
    CompanyStatus,
    JobStatus,
    Role,
    edge_roles,
)

logger = logging.getLogger(__name__)


class Action(str, Enum):
    READ_LISTING = "read_listing"
    VIEW_JOB = "view_job"
    VIEW_COMPANY = "view_company"
    APPLY = "apply"
    WITHDRAW = "withdraw"
    REVIEW_APPLICATION = "review_application"
    VIEW_APPLICATION = "view_application"
    DELETE_APPLICATION = "delete_application"
    CREATE_JOB = "create_job"
    EDIT_JOB = "edit_job"
    SET_JOB_STATUS = "set_job_status"
    DELETE_JOB = "delete_job"
    CREATE_COMPANY = "create_company"
    EDIT_COMPANY = "edit_company"
    MODERATE_COMPANY = "moderate_company"
    SAVE_JOB = "save_job"
    LIST_OWN_APPLICATIONS = "list_own_applications"
    LIST_COMPANY_APPLICATIONS = "list_company_applications"
    LIST_OWN_JOBS = "list_own_jobs"
    MANAGE_CATEGORIES = "manage_categories"
    EDIT_ACCOUNT = "edit_account"
    ADMINISTER = "administer"


class DenyReason(str, Enum):
    NOT_OWNER = "not_owner"
    INVALID_STATE = "invalid_state"
    DUPLICATE = "duplicate"
    FORBIDDEN_ROLE = "forbidden_role"
    ACCOUNT_INACTIVE = "account_inactive"
    DEADLINE_PASSED = "deadline_passed"


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    message: str = ""

    @classmethod
    def allow(cls) -> Decision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, message: str) -> Decision:
        return cls(allowed=False, reason=reason, message=message)

    def raise_for_denial(self) -> None:
        if self.allowed:
            return
        reason = self.reason.value if self.reason is not None else None
        if self.reason == DenyReason.DUPLICATE:
            raise RepositoryConflictError(self.message, reason=reason)
        raise RepositoryForbiddenError(self.message, reason=reason)


@dataclass(slots=True)
class Target:
    job: dict[str, Any] | None = None
    company: dict[str, Any] | None = None
    application: dict[str, Any] | None = None
    to_status: str | None = None
    existing_applications: list[dict[str, Any]] = field(default_factory=list)


_PUBLIC_ACTIONS = {Action.READ_LISTING}

_REQUIRED_ROLE: dict[Action, tuple[Role, str]] = {
    Action.CREATE_JOB: (Role.EMPLOYER, "only employers can post jobs"),
    Action.LIST_OWN_JOBS: (Role.EMPLOYER, "only employers have job postings"),
    Action.LIST_COMPANY_APPLICATIONS: (Role.EMPLOYER, "only employers receive applications"),
    Action.CREATE_COMPANY: (Role.EMPLOYER, "only employers can create a company profile"),
    Action.SAVE_JOB: (Role.CANDIDATE, "only candidates can save jobs"),
    Action.LIST_OWN_APPLICATIONS: (Role.CANDIDATE, "only candidates have applications"),
    Action.DELETE_APPLICATION: (Role.ADMIN, "admin role required"),
    Action.DELETE_JOB: (Role.ADMIN, "admin role required"),
    Action.MANAGE_CATEGORIES: (Role.ADMIN, "only admins can manage categories"),
    Action.ADMINISTER: (Role.ADMIN, "admin role required"),
}


class AuthorizationGate:
    def __init__(
        self,
        *,
        reapply_policy: str = "withdrawn_only",
        enforce_job_deadline: bool = False,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.reapply_policy = reapply_policy
        self.enforce_job_deadline = enforce_job_deadline
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    def enforce(self, actor: Principal | None, action: Action, target: Target | None = None) -> None:
        decision = self.authorize(actor, action, target)
        if not decision.allowed:
            logger.info(
                "authorization denied action=%s actor_id=%s reason=%s",
                action.value,
                actor.actor_id if actor else None,
                decision.reason.value if decision.reason else None,
            )
        decision.raise_for_denial()

    def authorize(self, actor: Principal | None, action: Action, target: Target | None = None) -> Decision:
        target = target or Target()

        if action in _PUBLIC_ACTIONS:
            return Decision.allow()
        if action == Action.VIEW_JOB and target.job and target.job["status"] == JobStatus.ACTIVE.value:
            return Decision.allow()
        if action == Action.VIEW_COMPANY and target.company and target.company["status"] == CompanyStatus.ACTIVE.value:
            return Decision.allow()

        if actor is None:
            return Decision.deny(DenyReason.FORBIDDEN_ROLE, "authentication required")
        if not actor.is_active:
            return Decision.deny(DenyReason.ACCOUNT_INACTIVE, f"account is {actor.account_status.value}")

        required = _REQUIRED_ROLE.get(action)
        if required is not None:
            role, message = required
            if actor.role != role:
                return Decision.deny(DenyReason.FORBIDDEN_ROLE, message)
            return Decision.allow()

        handler = self._handlers.get(action)
        if handler is None:
            return Decision.deny(DenyReason.FORBIDDEN_ROLE, f"unsupported action: {action.value}")
        return handler(self, actor, target)

    # applications

    def _apply(self, actor: Principal, target: Target) -> Decision:
        if actor.role != Role.CANDIDATE:
            return Decision.deny(DenyReason.FORBIDDEN_ROLE, "only candidates can apply to jobs")
        job = _require(target.job, "job")
        if job["status"] != JobStatus.ACTIVE.value:
            return Decision.deny(DenyReason.INVALID_STATE, f"job is not accepting applications (status={job['status']})")
        deadline = job.get("deadline")
        if self.enforce_job_deadline and deadline is not None and self._today() > _as_date(deadline):
            return Decision.deny(DenyReason.DEADLINE_PASSED, "application deadline has passed")
        for existing in target.existing_applications:
            if existing["candidate_id"] == actor.actor_id and blocks_reapplication(existing["status"], self.reapply_policy):
                return Decision.deny(DenyReason.DUPLICATE, "already applied to this job")
        return Decision.allow()

    def _withdraw(self, actor: Principal, target: Target) -> Decision:
        if actor.role != Role.CANDIDATE:
            return Decision.deny(DenyReason.FORBIDDEN_ROLE, "only candidates can withdraw applications")
        application = _require(target.application, "application")
        if application["candidate_id"] != actor.actor_id:
            return Decision.deny(DenyReason.NOT_OWNER, "application belongs to another candidate")
        return _check_edge(
            APPLICATION_TRANSITIONS,
            ApplicationStatus(application["status"]),
            ApplicationStatus.WITHDRAWN,
            actor.role,
            entity="application",
        )

    def _review_application(self, actor: Principal, target: Target) -> Decision:
        if actor.role not in (Role.EMPLOYER, Role.ADMIN):
            return Decision.deny(DenyReason.FORBIDDEN_ROLE, "only employers and admins can change application status")
        application = _require(target.application, "application")
        if actor.role == Role.EMPLOYER and application["owner_user_id"] != actor.actor_id:
            return Decision.deny(DenyReason.NOT_OWNER, "job belongs to another employer")
        if target.to_status is None:
            return Decision.allow()
        return _check_edge(
            APPLICATION_TRANSITIONS,
            ApplicationStatus(application["status"]),
            ApplicationStatus(target.to_status),
            actor.role,
            entity="application",
        )

    def _view_application(self, actor: Principal, target: Target) -> Decision:
        application = _require(target.application, "application")
        if actor.role == Role.ADMIN:
            return Decision.allow()
        if actor.role == Role.CANDIDATE and application["candidate_id"] == actor.actor_id:
            return Decision.allow()
        if actor.role == Role.EMPLOYER and application["owner_user_id"] == actor.actor_id:
            return Decision.allow()
        return Decision.deny(DenyReason.NOT_OWNER, "application is not visible to this actor")

    # jobs

    def _edit_job(self, actor: Principal, target: Target) -> Decision:
        job = _require(target.job, "job")
        decision = _owner_or_admin(actor, job["owner_user_id"], entity="job")
        if not decision.allowed:
            return decision
        if JobStatus(job["status"]).is_terminal:
            return Decision.deny(DenyReason.INVALID_STATE, f"job is {job['status']} and can no longer be edited")
        return Decision.allow()

    def _set_job_status(self, actor: Principal, target: Target) -> Decision:
        job = _require(target.job, "job")
        decision = _owner_or_admin(actor, job["owner_user_id"], entity="job")
        if not decision.allowed or target.to_status is None:
            return decision
        return _check_edge(
            JOB_TRANSITIONS,
            JobStatus(job["status"]),
            JobStatus(target.to_status),
            actor.role,
            entity="job",
        )

    def _view_job(self, actor: Principal, target: Target) -> Decision:
        job = _require(target.job, "job")
        return _owner_or_admin(actor, job["owner_user_id"], entity="job")

    # companies

    def _edit_company(self, actor: Principal, target: Target) -> Decision:
        company = _require(target.company, "company")
        return _owner_or_admin(actor, company["owner_user_id"], entity="company")

    def _view_company(self, actor: Principal, target: Target) -> Decision:
        company = _require(target.company, "company")
        return _owner_or_admin(actor, company["owner_user_id"], entity="company")

    def _moderate_company(self, actor: Principal, target: Target) -> Decision:
        if actor.role != Role.ADMIN:
            return Decision.deny(DenyReason.FORBIDDEN_ROLE, "only admins can moderate companies")
        if target.to_status is None:
            return Decision.allow()
        company = _require(target.company, "company")
        return _check_edge(
            COMPANY_TRANSITIONS,
            CompanyStatus(company["status"]),
            CompanyStatus(target.to_status),
            actor.role,
            entity="company",
        )

    # accounts

    def _edit_account(self, actor: Principal, target: Target) -> Decision:
        return Decision.allow()

    _handlers: Mapping[Action, Callable[[AuthorizationGate, Principal, Target], Decision]] = {
        Action.APPLY: _apply,
        Action.WITHDRAW: _withdraw,
        Action.REVIEW_APPLICATION: _review_application,
        Action.VIEW_APPLICATION: _view_application,
        Action.EDIT_JOB: _edit_job,
        Action.SET_JOB_STATUS: _set_job_status,
        Action.VIEW_JOB: _view_job,
        Action.EDIT_COMPANY: _edit_company,
        Action.VIEW_COMPANY: _view_company,
        Action.MODERATE_COMPANY: _moderate_company,
        Action.EDIT_ACCOUNT: _edit_account,
    }


def _check_edge(table: Mapping[Any, Any], from_status: Enum, to_status: Enum, role: Role, *, entity: str) -> Decision:
    if from_status == to_status:
        if getattr(from_status, "is_terminal", False):
            return Decision.deny(DenyReason.INVALID_STATE, f"{entity} is already {from_status.value}")
        return Decision.allow()
    roles = edge_roles(table, from_status, to_status)
    if roles is None:
        return Decision.deny(
            DenyReason.INVALID_STATE,
            f"invalid {entity} transition: {from_status.value} -> {to_status.value}",
        )
    if role not in roles:
        return Decision.deny(
            DenyReason.FORBIDDEN_ROLE,
            f"{role.value} cannot move {entity} from {from_status.value} to {to_status.value}",
        )
    return Decision.allow()


def _owner_or_admin(actor: Principal, owner_user_id: int | None, *, entity: str) -> Decision:
    if actor.role == Role.ADMIN:
        return Decision.allow()
    if actor.role != Role.EMPLOYER:
        return Decision.deny(DenyReason.FORBIDDEN_ROLE, f"only the owning employer or an admin can manage this {entity}")
    if owner_user_id != actor.actor_id:
        return Decision.deny(DenyReason.NOT_OWNER, f"{entity} belongs to another employer")
    return Decision.allow()


def _require(value: dict[str, Any] | None, name: str) -> dict[str, Any]:
    if value is None:
        raise ValueError(f"authorization target is missing {name}")
    return value


def _as_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])
