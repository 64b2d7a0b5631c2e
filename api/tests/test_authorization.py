from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from hirelane.core.auth import Principal
from hirelane.services.authorization import Action, AuthorizationGate, Decision, DenyReason, Target
from hirelane.services.repository import RepositoryConflictError, RepositoryForbiddenError
from hirelane.services.states import AccountStatus, Role

CANDIDATE = Principal(actor_id=1, role=Role.CANDIDATE, display_name="Cara", email="cara@example.com")
OTHER_CANDIDATE = Principal(actor_id=2, role=Role.CANDIDATE, display_name="Cody", email="cody@example.com")
EMPLOYER = Principal(actor_id=10, role=Role.EMPLOYER, display_name="Erin", email="erin@example.com")
OTHER_EMPLOYER = Principal(actor_id=11, role=Role.EMPLOYER, display_name="Eli", email="eli@example.com")
ADMIN = Principal(actor_id=99, role=Role.ADMIN, display_name="Ada", email="ada@example.com")


def _job(status: str = "active", **overrides: Any) -> dict[str, Any]:
    return {"id": 5, "status": status, "owner_user_id": EMPLOYER.actor_id, "deadline": None, **overrides}


def _application(status: str = "pending", **overrides: Any) -> dict[str, Any]:
    return {
        "id": 7,
        "status": status,
        "candidate_id": CANDIDATE.actor_id,
        "owner_user_id": EMPLOYER.actor_id,
        **overrides,
    }


def test_candidate_may_apply_to_active_job() -> None:
    gate = AuthorizationGate()
    assert gate.authorize(CANDIDATE, Action.APPLY, Target(job=_job())) == Decision.allow()


@pytest.mark.parametrize("status", ["pending", "inactive", "closed", "rejected"])
def test_apply_to_non_active_job_is_invalid_state(status: str) -> None:
    decision = AuthorizationGate().authorize(CANDIDATE, Action.APPLY, Target(job=_job(status)))
    assert decision.reason == DenyReason.INVALID_STATE


def test_employer_cannot_apply() -> None:
    decision = AuthorizationGate().authorize(EMPLOYER, Action.APPLY, Target(job=_job()))
    assert decision.reason == DenyReason.FORBIDDEN_ROLE


def test_existing_open_application_is_duplicate_but_withdrawn_is_not() -> None:
    gate = AuthorizationGate()
    open_application = _application("rejected")
    withdrawn = _application("withdrawn")

    denied = gate.authorize(CANDIDATE, Action.APPLY, Target(job=_job(), existing_applications=[open_application]))
    allowed = gate.authorize(CANDIDATE, Action.APPLY, Target(job=_job(), existing_applications=[withdrawn]))

    assert denied.reason == DenyReason.DUPLICATE
    assert allowed.allowed


def test_never_reapply_policy_blocks_even_after_withdrawal() -> None:
    gate = AuthorizationGate(reapply_policy="never")
    decision = gate.authorize(
        CANDIDATE,
        Action.APPLY,
        Target(job=_job(), existing_applications=[_application("withdrawn")]),
    )
    assert decision.reason == DenyReason.DUPLICATE


def test_deadline_is_advisory_unless_enforced() -> None:
    job = _job(deadline=date(2024, 1, 31))
    today = lambda: date(2024, 2, 1)  # noqa: E731

    advisory = AuthorizationGate(today=today).authorize(CANDIDATE, Action.APPLY, Target(job=job))
    enforced = AuthorizationGate(enforce_job_deadline=True, today=today).authorize(
        CANDIDATE, Action.APPLY, Target(job=job)
    )

    assert advisory.allowed
    assert enforced.reason == DenyReason.DEADLINE_PASSED


def test_inactive_account_is_denied_before_role_checks() -> None:
    banned = Principal(
        actor_id=3,
        role=Role.CANDIDATE,
        display_name="Ban",
        email="ban@example.com",
        account_status=AccountStatus.BANNED,
    )
    decision = AuthorizationGate().authorize(banned, Action.APPLY, Target(job=_job()))
    assert decision.reason == DenyReason.ACCOUNT_INACTIVE


def test_withdraw_checks_ownership_then_state() -> None:
    gate = AuthorizationGate()

    assert gate.authorize(CANDIDATE, Action.WITHDRAW, Target(application=_application("shortlisted"))).allowed
    assert (
        gate.authorize(OTHER_CANDIDATE, Action.WITHDRAW, Target(application=_application())).reason
        == DenyReason.NOT_OWNER
    )
    assert (
        gate.authorize(CANDIDATE, Action.WITHDRAW, Target(application=_application("interviewed"))).reason
        == DenyReason.INVALID_STATE
    )


def test_review_requires_owning_employer_or_admin() -> None:
    gate = AuthorizationGate()
    target = Target(application=_application(), to_status="reviewing")

    assert gate.authorize(EMPLOYER, Action.REVIEW_APPLICATION, target).allowed
    assert gate.authorize(ADMIN, Action.REVIEW_APPLICATION, target).allowed
    assert gate.authorize(OTHER_EMPLOYER, Action.REVIEW_APPLICATION, target).reason == DenyReason.NOT_OWNER
    assert gate.authorize(CANDIDATE, Action.REVIEW_APPLICATION, target).reason == DenyReason.FORBIDDEN_ROLE


def test_missing_edge_is_invalid_state_and_wrong_role_on_edge_is_forbidden_role() -> None:
    gate = AuthorizationGate()

    skip_to_accepted = Target(application=_application("reviewing"), to_status="accepted")
    employer_withdraw = Target(application=_application("pending"), to_status="withdrawn")

    assert gate.authorize(EMPLOYER, Action.REVIEW_APPLICATION, skip_to_accepted).reason == DenyReason.INVALID_STATE
    assert gate.authorize(EMPLOYER, Action.REVIEW_APPLICATION, employer_withdraw).reason == DenyReason.FORBIDDEN_ROLE


def test_self_transition_is_allowed_only_from_open_states() -> None:
    gate = AuthorizationGate()

    reviewing = Target(application=_application("reviewing"), to_status="reviewing")
    withdrawn = Target(application=_application("withdrawn"), to_status="withdrawn")
    closed = Target(job=_job("closed"), to_status="closed")

    assert gate.authorize(EMPLOYER, Action.REVIEW_APPLICATION, reviewing).allowed
    assert gate.authorize(CANDIDATE, Action.WITHDRAW, withdrawn).reason == DenyReason.INVALID_STATE
    assert gate.authorize(ADMIN, Action.SET_JOB_STATUS, closed).reason == DenyReason.INVALID_STATE
    assert gate.authorize(ADMIN, Action.SET_JOB_STATUS, Target(job=_job("active"), to_status="active")).allowed


def test_employer_cannot_approve_own_job() -> None:
    decision = AuthorizationGate().authorize(
        EMPLOYER,
        Action.SET_JOB_STATUS,
        Target(job=_job("pending"), to_status="active"),
    )
    assert decision.reason == DenyReason.FORBIDDEN_ROLE


def test_non_active_job_is_visible_only_to_owner_and_admin() -> None:
    gate = AuthorizationGate()
    target = Target(job=_job("pending"))

    assert gate.authorize(None, Action.VIEW_JOB, Target(job=_job("active"))).allowed
    assert gate.authorize(EMPLOYER, Action.VIEW_JOB, target).allowed
    assert gate.authorize(ADMIN, Action.VIEW_JOB, target).allowed
    assert not gate.authorize(CANDIDATE, Action.VIEW_JOB, target).allowed
    assert not gate.authorize(None, Action.VIEW_JOB, target).allowed


def test_admin_only_actions() -> None:
    gate = AuthorizationGate()
    for action in (Action.ADMINISTER, Action.DELETE_JOB, Action.DELETE_APPLICATION):
        assert gate.authorize(ADMIN, action).allowed
        assert gate.authorize(EMPLOYER, action).reason == DenyReason.FORBIDDEN_ROLE


def test_denial_maps_to_typed_errors() -> None:
    with pytest.raises(RepositoryConflictError) as duplicate:
        Decision.deny(DenyReason.DUPLICATE, "already applied").raise_for_denial()
    with pytest.raises(RepositoryForbiddenError) as not_owner:
        Decision.deny(DenyReason.NOT_OWNER, "not yours").raise_for_denial()

    assert duplicate.value.reason == "duplicate"
    assert not_owner.value.code == "forbidden"
    assert not_owner.value.reason == "not_owner"
    Decision.allow().raise_for_denial()


def test_denial_without_reason_raises_forbidden() -> None:
    with pytest.raises(RepositoryForbiddenError) as exc_info:
        Decision(allowed=False, message="denied").raise_for_denial()

    assert exc_info.value.reason is None
    assert str(exc_info.value) == "denied"


def test_category_management_is_admin_only() -> None:
    gate = AuthorizationGate()
    assert gate.authorize(ADMIN, Action.MANAGE_CATEGORIES).allowed
    assert gate.authorize(EMPLOYER, Action.MANAGE_CATEGORIES).reason == DenyReason.FORBIDDEN_ROLE


def test_account_edits_require_an_active_account() -> None:
    gate = AuthorizationGate()
    inactive = Principal(
        actor_id=4,
        role=Role.EMPLOYER,
        display_name="Ina",
        email="ina@example.com",
        account_status=AccountStatus.INACTIVE,
    )

    assert gate.authorize(CANDIDATE, Action.EDIT_ACCOUNT).allowed
    assert gate.authorize(inactive, Action.EDIT_ACCOUNT).reason == DenyReason.ACCOUNT_INACTIVE
