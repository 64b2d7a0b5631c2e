"""Closed status enumerations and the transition tables that drive every state machine.

Each table maps ``from_status -> {to_status: roles allowed to trigger the edge}``. An edge that
is absent is an illegal move for everyone; an edge that is present but lacks the actor's role is
a role violation. Ownership is checked separately by the authorization gate.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping, TypeVar


class Role(str, Enum):
    CANDIDATE = "candidate"
    EMPLOYER = "employer"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BANNED = "banned"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    SHORTLISTED = "shortlisted"
    INTERVIEWED = "interviewed"
    OFFERED = "offered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

    @property
    def is_terminal(self) -> bool:
        return self in APPLICATION_TERMINAL_STATES


class JobStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in JOB_TERMINAL_STATES


class CompanyStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


_REVIEWERS = frozenset({Role.EMPLOYER, Role.ADMIN})
_CANDIDATE = frozenset({Role.CANDIDATE})
_ADMIN = frozenset({Role.ADMIN})

APPLICATION_TERMINAL_STATES = frozenset(
    {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN}
)
APPLICATION_WITHDRAWABLE_STATES = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.REVIEWING, ApplicationStatus.SHORTLISTED}
)

APPLICATION_TRANSITIONS: dict[ApplicationStatus, dict[ApplicationStatus, frozenset[Role]]] = {
    ApplicationStatus.PENDING: {
        ApplicationStatus.REVIEWING: _REVIEWERS,
        ApplicationStatus.SHORTLISTED: _REVIEWERS,
        ApplicationStatus.INTERVIEWED: _REVIEWERS,
        ApplicationStatus.OFFERED: _REVIEWERS,
        ApplicationStatus.REJECTED: _REVIEWERS,
        ApplicationStatus.WITHDRAWN: _CANDIDATE,
    },
    ApplicationStatus.REVIEWING: {
        ApplicationStatus.SHORTLISTED: _REVIEWERS,
        ApplicationStatus.INTERVIEWED: _REVIEWERS,
        ApplicationStatus.OFFERED: _REVIEWERS,
        ApplicationStatus.REJECTED: _REVIEWERS,
        ApplicationStatus.WITHDRAWN: _CANDIDATE,
    },
    ApplicationStatus.SHORTLISTED: {
        ApplicationStatus.INTERVIEWED: _REVIEWERS,
        ApplicationStatus.OFFERED: _REVIEWERS,
        ApplicationStatus.REJECTED: _REVIEWERS,
        ApplicationStatus.WITHDRAWN: _CANDIDATE,
    },
    ApplicationStatus.INTERVIEWED: {
        ApplicationStatus.OFFERED: _REVIEWERS,
        ApplicationStatus.REJECTED: _REVIEWERS,
    },
    ApplicationStatus.OFFERED: {
        ApplicationStatus.ACCEPTED: _REVIEWERS,
        ApplicationStatus.REJECTED: _REVIEWERS,
    },
    ApplicationStatus.ACCEPTED: {},
    ApplicationStatus.REJECTED: {},
    ApplicationStatus.WITHDRAWN: {},
}

JOB_TERMINAL_STATES = frozenset({JobStatus.CLOSED, JobStatus.REJECTED})

JOB_TRANSITIONS: dict[JobStatus, dict[JobStatus, frozenset[Role]]] = {
    JobStatus.PENDING: {
        JobStatus.ACTIVE: _ADMIN,
        JobStatus.REJECTED: _ADMIN,
    },
    JobStatus.ACTIVE: {
        JobStatus.INACTIVE: _REVIEWERS,
        JobStatus.CLOSED: _REVIEWERS,
    },
    JobStatus.INACTIVE: {
        JobStatus.ACTIVE: _REVIEWERS,
        JobStatus.CLOSED: _REVIEWERS,
    },
    JobStatus.CLOSED: {},
    JobStatus.REJECTED: {},
}

COMPANY_TRANSITIONS: dict[CompanyStatus, dict[CompanyStatus, frozenset[Role]]] = {
    CompanyStatus.PENDING: {CompanyStatus.ACTIVE: _ADMIN, CompanyStatus.INACTIVE: _ADMIN},
    CompanyStatus.ACTIVE: {CompanyStatus.PENDING: _ADMIN, CompanyStatus.INACTIVE: _ADMIN},
    CompanyStatus.INACTIVE: {CompanyStatus.PENDING: _ADMIN, CompanyStatus.ACTIVE: _ADMIN},
}

S = TypeVar("S", bound=Enum)


def edge_roles(table: Mapping[S, Mapping[S, frozenset[Role]]], from_status: S, to_status: S) -> frozenset[Role] | None:
    """Roles allowed on ``from_status -> to_status``; ``None`` when the edge does not exist."""
    return table.get(from_status, {}).get(to_status)


def next_statuses(table: Mapping[S, Mapping[S, frozenset[Role]]], from_status: S, role: Role) -> list[S]:
    return [to_status for to_status, roles in table.get(from_status, {}).items() if role in roles]


def coerce_status(enum_cls: type[S], value: object) -> S:
    if isinstance(value, enum_cls):
        return value
    return enum_cls(value)
