from __future__ import annotations

import logging
from typing import Any

from hirelane.core.auth import Principal
from hirelane.services.authorization import Action, AuthorizationGate
from hirelane.services.repository import RepositoryNotFoundError
from hirelane.services.states import JobStatus

logger = logging.getLogger(__name__)


class SavedJobRegistry:
    """Candidate bookmarks. Saving and unsaving are idempotent."""

    def __init__(self, repository: Any, gate: AuthorizationGate) -> None:
        self.repository = repository
        self.gate = gate

    async def save(self, actor: Principal, job_id: int) -> dict[str, Any]:
        self.gate.enforce(actor, Action.SAVE_JOB)
        job = await self.repository.get_job(job_id)
        if job["status"] != JobStatus.ACTIVE.value:
            raise RepositoryNotFoundError("job not found")
        saved = await self.repository.save_job(candidate_id=actor.actor_id, job_id=job_id)
        logger.info("job saved job_id=%s candidate_id=%s", job_id, actor.actor_id)
        return {**saved, "job": job}

    async def unsave(self, actor: Principal, job_id: int) -> bool:
        self.gate.enforce(actor, Action.SAVE_JOB)
        removed = await self.repository.unsave_job(candidate_id=actor.actor_id, job_id=job_id)
        if removed:
            logger.info("job unsaved job_id=%s candidate_id=%s", job_id, actor.actor_id)
        return removed

    async def list_saved(self, actor: Principal) -> list[dict[str, Any]]:
        self.gate.enforce(actor, Action.SAVE_JOB)
        return await self.repository.list_saved_job_rows(actor.actor_id)
