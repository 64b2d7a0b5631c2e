from __future__ import annotations

import asyncio

import pytest

from hirelane.services.discovery import JobFilter, PageSpec, SortSpec
from hirelane.services.moderation import normalize_job_fields
from hirelane.services.repository import (
    RepositoryForbiddenError,
    RepositoryNotFoundError,
    RepositoryValidationError,
)


def test_new_job_is_pending_and_only_listed_after_approval(marketplace) -> None:
    async def scenario() -> None:
        employer, company = await marketplace.employer()
        job = await marketplace.pending_job(employer, "Data Engineer", salary_min=50_000, salary_max=70_000)
        assert job["status"] == "pending"
        assert job["company_id"] == company["id"]

        active_only = JobFilter(status="active")
        before = await marketplace.discovery.search_jobs(None, active_only, SortSpec(), PageSpec())
        assert [row["id"] for row in before.items] == []

        approved = await marketplace.moderation.approve(await marketplace.admin(), job["id"], note="looks good")
        assert approved["status"] == "active"

        after = await marketplace.discovery.search_jobs(None, active_only, SortSpec(), PageSpec())
        assert [row["id"] for row in after.items] == [job["id"]]

    asyncio.run(scenario())


def test_employer_cannot_approve_own_job(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.pending_job(employer)

        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await marketplace.moderation.approve(employer, job["id"])
        assert exc_info.value.reason == "forbidden_role"

        with pytest.raises(RepositoryForbiddenError):
            await marketplace.moderation.set_status(employer, job["id"], "active")

        assert (await marketplace.repository.get_job(job["id"]))["status"] == "pending"

    asyncio.run(scenario())


def test_approving_a_closed_job_is_an_invalid_state(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.active_job(employer)
        await marketplace.moderation.set_status(employer, job["id"], "closed")

        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await marketplace.moderation.approve(await marketplace.admin(), job["id"])
        assert exc_info.value.reason == "invalid_state"

    asyncio.run(scenario())


def test_reject_retains_job_by_default(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.pending_job(employer)
        admin = await marketplace.admin()

        rejected = await marketplace.moderation.reject(admin, job["id"], note="missing salary")
        assert rejected["status"] == "rejected"
        assert (await marketplace.repository.get_job(job["id"]))["status"] == "rejected"

        history = await marketplace.moderation.history(admin, job["id"])
        assert [event["event_type"] for event in history] == ["created", "status_changed"]
        assert history[-1]["note"] == "missing salary"

    asyncio.run(scenario())


def test_reject_in_delete_mode_removes_job(build_marketplace) -> None:
    marketplace = build_marketplace(rejection_mode="delete")

    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.pending_job(employer)

        snapshot = await marketplace.moderation.set_status(await marketplace.admin(), job["id"], "rejected")
        assert snapshot["status"] == "rejected"
        assert snapshot["id"] == job["id"]

        with pytest.raises(RepositoryNotFoundError):
            await marketplace.repository.get_job(job["id"])
        events = await marketplace.repository.list_events(entity_type="job", entity_id=job["id"])
        assert events[-1]["event_type"] == "rejected"

    asyncio.run(scenario())


def test_employer_toggles_active_and_inactive_then_closes(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.active_job(employer)

        paused = await marketplace.moderation.set_status(employer, job["id"], "inactive")
        resumed = await marketplace.moderation.set_status(employer, job["id"], "active")
        closed = await marketplace.moderation.set_status(employer, job["id"], "closed")
        assert [paused["status"], resumed["status"], closed["status"]] == ["inactive", "active", "closed"]

        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await marketplace.moderation.set_status(employer, job["id"], "active")
        assert exc_info.value.reason == "invalid_state"

        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await marketplace.moderation.update_job(employer, job["id"], {"title": "Reopened"})
        assert exc_info.value.reason == "invalid_state"

    asyncio.run(scenario())


def test_other_employer_cannot_edit_or_change_status(marketplace) -> None:
    async def scenario() -> None:
        owner, _ = await marketplace.employer("Owner Co")
        intruder, _ = await marketplace.employer("Intruder Co")
        job = await marketplace.active_job(owner)

        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await marketplace.moderation.update_job(intruder, job["id"], {"title": "Hijacked"})
        assert exc_info.value.reason == "not_owner"

        with pytest.raises(RepositoryForbiddenError) as exc_info:
            await marketplace.moderation.set_status(intruder, job["id"], "closed")
        assert exc_info.value.reason == "not_owner"

        assert (await marketplace.repository.get_job(job["id"]))["title"] == job["title"]

    asyncio.run(scenario())


def test_update_job_bumps_version_and_normalizes_tags(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.pending_job(employer)

        updated = await marketplace.moderation.update_job(
            employer,
            job["id"],
            {"tags": ["Python", " python ", "SQL"], "salary_min": 40_000},
            expected_version=job["version"],
        )
        assert updated["tags"] == ["python", "sql"]
        assert updated["version"] == job["version"] + 1

        with pytest.raises(RepositoryValidationError):
            await marketplace.moderation.update_job(employer, job["id"], {"salary_max": 10_000})
        with pytest.raises(RepositoryValidationError):
            await marketplace.moderation.update_job(employer, job["id"], {"status": "active"})

    asyncio.run(scenario())


def test_hidden_jobs_read_as_missing(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        other, _ = await marketplace.employer("Other Co")
        candidate = await marketplace.user("candidate")
        job = await marketplace.pending_job(employer)

        for actor in (None, candidate, other):
            with pytest.raises(RepositoryNotFoundError):
                await marketplace.moderation.get_job(actor, job["id"])

        assert (await marketplace.moderation.get_job(employer, job["id"]))["id"] == job["id"]
        assert (await marketplace.moderation.get_job(await marketplace.admin(), job["id"]))["id"] == job["id"]

    asyncio.run(scenario())


def test_record_view_skips_owner(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.active_job(employer)
        candidate = await marketplace.user("candidate")

        await marketplace.moderation.record_view(None, job)
        await marketplace.moderation.record_view(candidate, job)
        await marketplace.moderation.record_view(employer, job)

        assert (await marketplace.repository.get_job(job["id"]))["views"] == 2

    asyncio.run(scenario())


def test_create_job_requires_company_profile(marketplace) -> None:
    async def scenario() -> None:
        employer = await marketplace.user("employer")
        with pytest.raises(RepositoryNotFoundError):
            await marketplace.moderation.create_job(employer, {"title": "Orphan"})

        candidate = await marketplace.user("candidate")
        with pytest.raises(RepositoryForbiddenError):
            await marketplace.moderation.create_job(candidate, {"title": "Nope"})

    asyncio.run(scenario())


def test_admin_deletes_job_and_its_applications(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.active_job(employer)
        candidate = await marketplace.user("candidate")
        application = await marketplace.apply(candidate, job)

        with pytest.raises(RepositoryForbiddenError):
            await marketplace.moderation.delete_job(employer, job["id"])
        await marketplace.moderation.delete_job(await marketplace.admin(), job["id"])

        with pytest.raises(RepositoryNotFoundError):
            await marketplace.repository.get_application(application["id"])

    asyncio.run(scenario())


def test_job_allowed_transitions(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.pending_job(employer)
        admin = await marketplace.admin()

        assert await marketplace.moderation.allowed_transitions(employer, job["id"]) == []
        assert await marketplace.moderation.allowed_transitions(admin, job["id"]) == ["active", "rejected"]

        await marketplace.moderation.approve(admin, job["id"])
        assert await marketplace.moderation.allowed_transitions(employer, job["id"]) == ["inactive", "closed"]

    asyncio.run(scenario())


def test_normalize_job_fields_rejects_bad_values() -> None:
    with pytest.raises(RepositoryValidationError):
        normalize_job_fields({"title": "  "}, creating=True)
    with pytest.raises(RepositoryValidationError):
        normalize_job_fields({"title": "Dev", "job_type": "gig"}, creating=True)
    with pytest.raises(RepositoryValidationError):
        normalize_job_fields({"title": "Dev", "salary_min": -1}, creating=True)

    cleaned = normalize_job_fields({"title": " Dev ", "description": None}, creating=True)
    assert cleaned == {"title": "Dev"}
    assert normalize_job_fields({"description": None}, creating=False) == {"description": None}
