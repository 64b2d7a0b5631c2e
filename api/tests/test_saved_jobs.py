from __future__ import annotations

import asyncio

import pytest

from hirelane.services.repository import RepositoryForbiddenError, RepositoryNotFoundError


def test_save_and_unsave_are_idempotent(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.active_job(employer)
        candidate = await marketplace.user("candidate")

        first = await marketplace.saved_jobs.save(candidate, job["id"])
        second = await marketplace.saved_jobs.save(candidate, job["id"])
        assert first["id"] == second["id"]
        assert first["job"]["title"] == job["title"]
        assert len(await marketplace.saved_jobs.list_saved(candidate)) == 1

        assert await marketplace.saved_jobs.unsave(candidate, job["id"]) is True
        assert await marketplace.saved_jobs.unsave(candidate, job["id"]) is False
        assert await marketplace.saved_jobs.list_saved(candidate) == []

    asyncio.run(scenario())


def test_only_candidates_save_active_jobs(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        pending = await marketplace.pending_job(employer)
        candidate = await marketplace.user("candidate")

        with pytest.raises(RepositoryNotFoundError):
            await marketplace.saved_jobs.save(candidate, pending["id"])
        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await marketplace.saved_jobs.list_saved(employer)
        assert exc_info.value.reason == "forbidden_role"

    asyncio.run(scenario())


def test_deleted_jobs_drop_out_of_saved_list(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        kept = await marketplace.active_job(employer, "Kept")
        removed = await marketplace.active_job(employer, "Removed")
        candidate = await marketplace.user("candidate")
        await marketplace.saved_jobs.save(candidate, kept["id"])
        await marketplace.saved_jobs.save(candidate, removed["id"])

        await marketplace.moderation.delete_job(await marketplace.admin(), removed["id"])

        saved = await marketplace.saved_jobs.list_saved(candidate)
        assert [row["job"]["title"] for row in saved] == ["Kept"]

    asyncio.run(scenario())
