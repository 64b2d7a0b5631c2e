from __future__ import annotations

import logging
from typing import Any

from hirelane.core.auth import Principal
from hirelane.services.authorization import Action, AuthorizationGate, Decision, DenyReason, Target
from hirelane.services.concurrency import write_version
from hirelane.services.repository import RepositoryForbiddenError, RepositoryNotFoundError, RepositoryValidationError
from hirelane.services.states import JobStatus, coerce_status

logger = logging.getLogger(__name__)

JOB_TYPES = ("full-time", "part-time", "contract", "internship", "freelance")
EXPERIENCE_LEVELS = ("entry", "junior", "mid", "senior", "lead")


def normalize_job_fields(fields: dict[str, Any], *, creating: bool) -> dict[str, Any]:
    """Validate and clean job content fields; status is never accepted here."""
    if "status" in fields:
        raise RepositoryValidationError("job status is changed through the status endpoint")

    cleaned = {key: value for key, value in fields.items() if not (value is None and creating)}
    if "title" in cleaned or creating:
        title = (cleaned.get("title") or "").strip()
        if not title:
            raise RepositoryValidationError("title is required")
        cleaned["title"] = title

    job_type = cleaned.get("job_type")
    if job_type is not None and job_type not in JOB_TYPES:
        raise RepositoryValidationError(f"unknown job_type: {job_type}")
    experience_level = cleaned.get("experience_level")
    if experience_level is not None and experience_level not in EXPERIENCE_LEVELS:
        raise RepositoryValidationError(f"unknown experience_level: {experience_level}")

    for key in ("salary_min", "salary_max"):
        value = cleaned.get(key)
        if value is not None and value < 0:
            raise RepositoryValidationError(f"{key} must be non-negative")
    low, high = cleaned.get("salary_min"), cleaned.get("salary_max")
    if low is not None and high is not None and low > high:
        raise RepositoryValidationError("salary_min must not exceed salary_max")

    if "tags" in cleaned:
        seen: list[str] = []
        for tag in cleaned["tags"] or []:
            value = tag.strip().lower()
            if value and value not in seen:
                seen.append(value)
        cleaned["tags"] = seen
    return cleaned


class JobModeration:
    """Job posting lifecycle: employer drafts, admin approval and employer-driven status."""

    def __init__(
        self,
        repository: Any,
        gate: AuthorizationGate,
        *,
        rejection_mode: str = "retain",
        concurrency_policy: str = "versioned",
    ) -> None:
        self.repository = repository
        self.gate = gate
        self.rejection_mode = rejection_mode
        self.concurrency_policy = concurrency_policy

    async def create_job(self, actor: Principal, fields: dict[str, Any]) -> dict[str, Any]:
        self.gate.enforce(actor, Action.CREATE_JOB)
        company = await self.repository.get_company_by_owner(actor.actor_id)
        if company is None:
            raise RepositoryNotFoundError("create a company profile before posting jobs")

        cleaned = normalize_job_fields(fields, creating=True)
        cleaned["status"] = JobStatus.PENDING.value
        job = await self.repository.create_job(company_id=company["id"], fields=cleaned)
        await self._record(job["id"], "created", actor, to_status=job["status"])
        logger.info("job created job_id=%s company_id=%s actor_id=%s", job["id"], company["id"], actor.actor_id)
        return job

    async def update_job(
        self,
        actor: Principal,
        job_id: int,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        job = await self.repository.get_job(job_id)
        self.gate.enforce(actor, Action.EDIT_JOB, Target(job=job))
        cleaned = normalize_job_fields(fields, creating=False)

        merged_low = cleaned.get("salary_min", job.get("salary_min"))
        merged_high = cleaned.get("salary_max", job.get("salary_max"))
        if merged_low is not None and merged_high is not None and merged_low > merged_high:
            raise RepositoryValidationError("salary_min must not exceed salary_max")
        if not cleaned:
            return job

        version = write_version(self.concurrency_policy, job["version"], expected_version, entity="job")
        updated = await self.repository.update_job(job_id, cleaned, expected_version=version)
        await self._record(job_id, "updated", actor)
        logger.info("job updated job_id=%s fields=%s actor_id=%s", job_id, ",".join(sorted(cleaned)), actor.actor_id)
        return updated

    async def get_job(self, actor: Principal | None, job_id: int) -> dict[str, Any]:
        """Return a job the actor may see; hidden jobs read as missing."""
        job = await self.repository.get_job(job_id)
        if not self.gate.authorize(actor, Action.VIEW_JOB, Target(job=job)).allowed:
            raise RepositoryNotFoundError("job not found")
        return job

    async def record_view(self, actor: Principal | None, job: dict[str, Any]) -> None:
        if actor is not None and actor.actor_id == job["owner_user_id"]:
            return
        await self.repository.increment_job_views(job["id"])

    async def approve(
        self,
        actor: Principal,
        job_id: int,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        job = await self.repository.get_job(job_id)
        self.gate.enforce(actor, Action.ADMINISTER)
        if job["status"] not in (JobStatus.PENDING.value, JobStatus.ACTIVE.value):
            raise RepositoryForbiddenError(
                f"only pending jobs can be approved (status={job['status']})",
                reason=DenyReason.INVALID_STATE.value,
            )
        return await self._transition(actor, job, JobStatus.ACTIVE, note=note, expected_version=expected_version)

    async def reject(
        self,
        actor: Principal,
        job_id: int,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        job = await self.repository.get_job(job_id)
        if self.rejection_mode != "delete":
            return await self._transition(actor, job, JobStatus.REJECTED, note=note, expected_version=expected_version)

        self.gate.enforce(actor, Action.SET_JOB_STATUS, Target(job=job, to_status=JobStatus.REJECTED.value))
        write_version(self.concurrency_policy, job["version"], expected_version, entity="job")
        await self.repository.delete_job(job_id)
        await self._record(job_id, "rejected", actor, from_status=job["status"], to_status="rejected", note=note)
        logger.info("job rejected and removed job_id=%s actor_id=%s", job_id, actor.actor_id)
        return {**job, "status": JobStatus.REJECTED.value}

    async def set_status(
        self,
        actor: Principal,
        job_id: int,
        status: JobStatus | str,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        try:
            to_status = coerce_status(JobStatus, status)
        except ValueError as exc:
            raise RepositoryValidationError(f"unknown job status: {status}") from exc
        if to_status == JobStatus.REJECTED:
            return await self.reject(actor, job_id, note=note, expected_version=expected_version)
        job = await self.repository.get_job(job_id)
        return await self._transition(actor, job, to_status, note=note, expected_version=expected_version)

    async def delete_job(self, actor: Principal, job_id: int) -> None:
        job = await self.repository.get_job(job_id)
        self.gate.enforce(actor, Action.DELETE_JOB, Target(job=job))
        await self.repository.delete_job(job_id)
        await self._record(job_id, "deleted", actor, from_status=job["status"])
        logger.info("job deleted job_id=%s actor_id=%s", job_id, actor.actor_id)

    async def history(self, actor: Principal, job_id: int) -> list[dict[str, Any]]:
        job = await self.repository.get_job(job_id)
        self.gate.enforce(actor, Action.SET_JOB_STATUS, Target(job=job))
        return await self.repository.list_events(entity_type="job", entity_id=job_id)

    def can(self, actor: Principal | None, job: dict[str, Any], to_status: JobStatus) -> Decision:
        return self.gate.authorize(actor, Action.SET_JOB_STATUS, Target(job=job, to_status=to_status.value))

    async def allowed_transitions(self, actor: Principal, job_id: int) -> list[str]:
        job = await self.get_job(actor, job_id)
        return [
            status.value
            for status in JobStatus
            if status.value != job["status"] and self.can(actor, job, status).allowed
        ]

    async def _transition(
        self,
        actor: Principal,
        job: dict[str, Any],
        to_status: JobStatus,
        *,
        note: str | None,
        expected_version: int | None,
    ) -> dict[str, Any]:
        self.gate.enforce(actor, Action.SET_JOB_STATUS, Target(job=job, to_status=to_status.value))
        from_status = job["status"]
        if from_status == to_status.value:
            return job

        version = write_version(self.concurrency_policy, job["version"], expected_version, entity="job")
        updated = await self.repository.update_job(job["id"], {"status": to_status.value}, expected_version=version)
        await self._record(job["id"], "status_changed", actor, from_status=from_status, to_status=to_status.value, note=note)
        logger.info(
            "job status changed job_id=%s from=%s to=%s actor_id=%s",
            job["id"],
            from_status,
            to_status.value,
            actor.actor_id,
        )
        return updated

    async def _record(
        self,
        job_id: int,
        event_type: str,
        actor: Principal,
        *,
        from_status: str | None = None,
        to_status: str | None = None,
        note: str | None = None,
    ) -> None:
        await self.repository.record_event(
            entity_type="job",
            entity_id=job_id,
            event_type=event_type,
            actor_id=actor.actor_id,
            from_status=from_status,
            to_status=to_status,
            note=note,
        )
