from __future__ import annotations

import logging
from typing import Any

from hirelane.core.auth import Principal
from hirelane.services.authorization import Action, AuthorizationGate, Decision, Target
from hirelane.services.concurrency import write_version
from hirelane.services.repository import RepositoryValidationError, utcnow
from hirelane.services.states import ApplicationStatus, Role, coerce_status

logger = logging.getLogger(__name__)


class ApplicationLifecycle:
    """Apply, withdraw and review flows for job applications.

    Every mutation is authorized by the gate before anything is written, so a denied request
    leaves the stored application untouched.
    """

    def __init__(self, repository: Any, gate: AuthorizationGate, *, concurrency_policy: str = "versioned") -> None:
        self.repository = repository
        self.gate = gate
        self.concurrency_policy = concurrency_policy

    async def apply(
        self,
        actor: Principal,
        *,
        job_id: int,
        cv_file: str,
        cover_letter: str | None = None,
        expected_salary: int | None = None,
    ) -> dict[str, Any]:
        if not cv_file or not cv_file.strip():
            raise RepositoryValidationError("cv_file is required")
        if expected_salary is not None and expected_salary < 0:
            raise RepositoryValidationError("expected_salary must be non-negative")

        job = await self.repository.get_job(job_id)
        existing = await self.repository.list_applications_for_pair(candidate_id=actor.actor_id, job_id=job_id)
        self.gate.enforce(actor, Action.APPLY, Target(job=job, existing_applications=existing))

        application = await self.repository.create_application(
            job_id=job_id,
            candidate_id=actor.actor_id,
            fields={
                "cv_file": cv_file.strip(),
                "cover_letter": cover_letter,
                "expected_salary": expected_salary,
            },
            reapply_policy=self.gate.reapply_policy,
        )
        await self.repository.record_event(
            entity_type="application",
            entity_id=application["id"],
            event_type="submitted",
            actor_id=actor.actor_id,
            to_status=application["status"],
        )
        logger.info(
            "application submitted application_id=%s job_id=%s candidate_id=%s",
            application["id"],
            job_id,
            actor.actor_id,
        )
        return application

    async def withdraw(
        self,
        actor: Principal,
        application_id: int,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        return await self._transition(
            actor,
            application_id,
            ApplicationStatus.WITHDRAWN,
            action=Action.WITHDRAW,
            note=note,
            expected_version=expected_version,
        )

    async def update_status(
        self,
        actor: Principal,
        application_id: int,
        status: ApplicationStatus | str,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        try:
            to_status = coerce_status(ApplicationStatus, status)
        except ValueError as exc:
            raise RepositoryValidationError(f"unknown application status: {status}") from exc
        return await self._transition(
            actor,
            application_id,
            to_status,
            action=Action.REVIEW_APPLICATION,
            note=note,
            expected_version=expected_version,
        )

    async def get(self, actor: Principal, application_id: int) -> dict[str, Any]:
        application = await self.repository.get_application(application_id)
        self.gate.enforce(actor, Action.VIEW_APPLICATION, Target(application=application))
        return application

    async def history(self, actor: Principal, application_id: int) -> list[dict[str, Any]]:
        await self.get(actor, application_id)
        return await self.repository.list_events(entity_type="application", entity_id=application_id)

    async def delete(self, actor: Principal, application_id: int) -> None:
        application = await self.repository.get_application(application_id)
        self.gate.enforce(actor, Action.DELETE_APPLICATION, Target(application=application))
        await self.repository.delete_application(application_id)
        await self.repository.record_event(
            entity_type="application",
            entity_id=application_id,
            event_type="deleted",
            actor_id=actor.actor_id,
            from_status=application["status"],
        )
        logger.info("application deleted application_id=%s actor_id=%s", application_id, actor.actor_id)

    def can(self, actor: Principal | None, application: dict[str, Any], to_status: ApplicationStatus) -> Decision:
        action = Action.REVIEW_APPLICATION
        if actor is not None and actor.role == Role.CANDIDATE and to_status == ApplicationStatus.WITHDRAWN:
            action = Action.WITHDRAW
        return self.gate.authorize(actor, action, Target(application=application, to_status=to_status.value))

    async def allowed_transitions(self, actor: Principal, application_id: int) -> list[str]:
        application = await self.get(actor, application_id)
        return [
            status.value
            for status in ApplicationStatus
            if status.value != application["status"] and self.can(actor, application, status).allowed
        ]

    async def _transition(
        self,
        actor: Principal,
        application_id: int,
        to_status: ApplicationStatus,
        *,
        action: Action,
        note: str | None,
        expected_version: int | None,
    ) -> dict[str, Any]:
        application = await self.repository.get_application(application_id)
        self.gate.enforce(actor, action, Target(application=application, to_status=to_status.value))

        from_status = application["status"]
        if from_status == to_status.value:
            return application

        version = write_version(
            self.concurrency_policy,
            application["version"],
            expected_version,
            entity="application",
        )
        changes: dict[str, Any] = {"status": to_status.value}
        if note is not None:
            changes["notes"] = note
        if action == Action.REVIEW_APPLICATION and application.get("reviewed_at") is None:
            changes["reviewed_at"] = utcnow()

        updated = await self.repository.update_application(application_id, changes, expected_version=version)
        await self.repository.record_event(
            entity_type="application",
            entity_id=application_id,
            event_type="status_changed",
            actor_id=actor.actor_id,
            from_status=from_status,
            to_status=to_status.value,
            note=note,
        )
        logger.info(
            "application status changed application_id=%s from=%s to=%s actor_id=%s",
            application_id,
            from_status,
            to_status.value,
            actor.actor_id,
        )
        return updated
