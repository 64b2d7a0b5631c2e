from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from hirelane.services.discovery import (
    ApplicationFilter,
    CompanyFilter,
    JobFilter,
    PageSpec,
    SortSpec,
    UserFilter,
    count_by,
    query,
)
from hirelane.services.repository import RepositoryForbiddenError, RepositoryValidationError

BASE_TIME = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _job(job_id: int, **fields) -> dict:
    row = {
        "id": job_id,
        "title": f"Job {job_id}",
        "company_name": "Acme Labs",
        "company_verified": False,
        "status": "active",
        "job_type": "full-time",
        "experience_level": "mid",
        "city": "Hanoi",
        "company_id": 1,
        "category_id": None,
        "remote": False,
        "featured": False,
        "tags": [],
        "salary_min": None,
        "salary_max": None,
        "views": 0,
        "applicant_count": 0,
        "deadline": None,
        "created_at": BASE_TIME + timedelta(minutes=job_id),
    }
    row.update(fields)
    return row


def test_query_is_deterministic_and_breaks_ties_on_id() -> None:
    rows = [_job(3, views=5), _job(1, views=5), _job(2, views=9)]

    first = query("job", rows, JobFilter(), SortSpec("views", "desc"), PageSpec(0, 10))
    second = query("job", list(reversed(rows)), JobFilter(), SortSpec("views", "desc"), PageSpec(0, 10))

    assert [row["id"] for row in first.items] == [2, 1, 3]
    assert [row["id"] for row in second.items] == [2, 1, 3]


def test_missing_sort_values_go_last_in_both_directions() -> None:
    rows = [_job(1, salary_min=None), _job(2, salary_min=30_000), _job(3, salary_min=10_000)]

    ascending = query("job", rows, None, SortSpec("salary_min", "asc"), PageSpec(0, 10))
    descending = query("job", rows, None, SortSpec("salary_min", "desc"), PageSpec(0, 10))

    assert [row["id"] for row in ascending.items] == [3, 2, 1]
    assert [row["id"] for row in descending.items] == [2, 3, 1]


def test_pagination_reports_total_and_returns_empty_past_the_end() -> None:
    rows = [_job(job_id) for job_id in range(1, 8)]

    page = query("job", rows, JobFilter(), SortSpec("created_at", "asc"), PageSpec(offset=5, limit=5))
    assert page.total == 7
    assert [row["id"] for row in page.items] == [6, 7]

    beyond = query("job", rows, JobFilter(), SortSpec("created_at", "asc"), PageSpec(offset=50, limit=5))
    assert beyond.total == 7
    assert beyond.items == []


def test_text_search_is_case_insensitive_across_title_company_and_tags() -> None:
    rows = [
        _job(1, title="Senior Python Developer"),
        _job(2, company_name="PyCorp"),
        _job(3, tags=["python", "django"]),
        _job(4, title="Rust Engineer"),
    ]

    assert [row["id"] for row in query("job", rows, JobFilter(q="PYTHON"), SortSpec("created_at", "asc")).items] == [1, 3]
    assert [row["id"] for row in query("job", rows, JobFilter(q="py"), SortSpec("created_at", "asc")).items] == [1, 2, 3]


def test_salary_filters_select_overlapping_ranges() -> None:
    rows = [
        _job(1, salary_min=20_000, salary_max=40_000),
        _job(2, salary_min=50_000, salary_max=80_000),
        _job(3, salary_min=90_000),
        _job(4),
    ]

    wanted = JobFilter(salary_min=35_000, salary_max=60_000)
    matched = query("job", rows, wanted, SortSpec("created_at", "asc"))
    assert [row["id"] for row in matched.items] == [1, 2]

    floor_only = query("job", rows, JobFilter(salary_min=85_000), SortSpec("created_at", "asc"))
    assert [row["id"] for row in floor_only.items] == [3]


def test_job_filters_combine() -> None:
    rows = [
        _job(1, remote=True, tags=["python"], company_verified=True),
        _job(2, remote=True, tags=["go"], company_verified=True),
        _job(3, remote=False, tags=["python"], city="Da Nang"),
    ]

    matched = query("job", rows, JobFilter(remote=True, tag="Python", verified=True), SortSpec("created_at", "asc"))
    assert [row["id"] for row in matched.items] == [1]
    by_city = query("job", rows, JobFilter(city="da nang"), SortSpec("created_at", "asc"))
    assert [row["id"] for row in by_city.items] == [3]


def test_category_filter_matches_exactly() -> None:
    rows = [_job(1, category_id=4), _job(2, category_id=40), _job(3)]

    matched = query("job", rows, JobFilter(category_id=4), SortSpec("created_at", "asc"))
    assert [row["id"] for row in matched.items] == [1]


def test_unknown_sort_key_is_rejected() -> None:
    with pytest.raises(RepositoryValidationError):
        query("job", [_job(1)], None, SortSpec("password", "asc"))
    with pytest.raises(RepositoryValidationError):
        query("job", [_job(1)], None, SortSpec("views", "sideways"))  # type: ignore[arg-type]


def test_count_by_includes_zero_buckets() -> None:
    rows = [{"status": "pending"}, {"status": "pending"}, {"status": "offered"}]
    assert count_by(rows, "status", ["pending", "offered", "accepted"]) == {"pending": 2, "offered": 1, "accepted": 0}


def test_page_spec_clamps_limit(build_marketplace) -> None:
    marketplace = build_marketplace(max_page_size=10)

    assert marketplace.discovery.page_spec(None, None).limit == 10
    assert marketplace.discovery.page_spec(-5, 0).offset == 0
    assert marketplace.discovery.page_spec(-5, 0).limit == 1
    assert marketplace.discovery.page_spec(3, 500).limit == 10


def test_public_job_search_only_shows_active_jobs(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        active = await marketplace.active_job(employer, "Visible")
        pending = await marketplace.pending_job(employer, "Hidden")

        public = await marketplace.discovery.search_jobs(None, JobFilter(), SortSpec("created_at", "asc"), PageSpec())
        assert [row["id"] for row in public.items] == [active["id"]]

        mine = await marketplace.discovery.search_jobs(
            employer, JobFilter(), SortSpec("created_at", "asc"), PageSpec(), scope="mine"
        )
        assert sorted(row["id"] for row in mine.items) == sorted([active["id"], pending["id"]])

        with pytest.raises(RepositoryForbiddenError):
            await marketplace.discovery.search_jobs(employer, JobFilter(), SortSpec(), PageSpec(), scope="all")
        with pytest.raises(RepositoryForbiddenError):
            await marketplace.discovery.search_jobs(None, JobFilter(), SortSpec(), PageSpec(), scope="mine")

    asyncio.run(scenario())


def test_applicant_counts_are_recomputed_on_read(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.active_job(employer)
        first = await marketplace.user("candidate")
        second = await marketplace.user("candidate")
        await marketplace.apply(first, job)
        application = await marketplace.apply(second, job)
        await marketplace.applications.withdraw(second, application["id"])

        page = await marketplace.discovery.search_jobs(None, JobFilter(), SortSpec("applicants", "desc"), PageSpec())
        assert page.items[0]["applicant_count"] == 1

    asyncio.run(scenario())


def test_application_scopes_follow_role(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer("Owner Co")
        other, _ = await marketplace.employer("Other Co")
        job = await marketplace.active_job(employer)
        other_job = await marketplace.active_job(other)
        candidate = await marketplace.user("candidate")
        mine = await marketplace.apply(candidate, job)
        await marketplace.apply(candidate, other_job)

        company_page = await marketplace.discovery.search_applications(
            employer, ApplicationFilter(), SortSpec("created_at", "asc"), PageSpec(), scope="company"
        )
        assert [row["id"] for row in company_page.items] == [mine["id"]]

        candidate_page = await marketplace.discovery.search_applications(
            candidate, ApplicationFilter(job_id=job["id"]), SortSpec("created_at", "asc"), PageSpec(), scope="mine"
        )
        assert [row["id"] for row in candidate_page.items] == [mine["id"]]

        with pytest.raises(RepositoryForbiddenError):
            await marketplace.discovery.search_applications(
                candidate, ApplicationFilter(), SortSpec(), PageSpec(), scope="company"
            )

        summary = await marketplace.discovery.application_summary(employer)
        assert summary["total"] == 1
        assert summary["by_status"]["pending"] == 1
        assert summary["by_status"]["withdrawn"] == 0

    asyncio.run(scenario())


def test_public_company_search_hides_unapproved_companies(marketplace) -> None:
    async def scenario() -> None:
        _, active = await marketplace.employer("Initech")
        pending_owner = await marketplace.user("employer")
        await marketplace.companies.create_company(pending_owner, {"company_name": "Initrode"})

        public = await marketplace.discovery.search_companies(None, CompanyFilter(q="init"), SortSpec("name", "asc"), PageSpec())
        assert [row["id"] for row in public.items] == [active["id"]]

        everything = await marketplace.discovery.search_companies(
            await marketplace.admin(), CompanyFilter(q="init"), SortSpec("name", "asc"), PageSpec(), scope="all"
        )
        assert [row["company_name"] for row in everything.items] == ["Initech", "Initrode"]

    asyncio.run(scenario())


def test_admin_statistics_and_user_search(marketplace) -> None:
    async def scenario() -> None:
        employer, _ = await marketplace.employer()
        job = await marketplace.active_job(employer)
        candidate = await marketplace.user("candidate", full_name="Ada Lovelace")
        await marketplace.apply(candidate, job)
        admin = await marketplace.admin()

        stats = await marketplace.discovery.statistics(admin)
        assert stats["users"]["total"] == 3
        assert stats["users"]["by_role"] == {"candidate": 1, "employer": 1, "admin": 1}
        assert stats["companies"]["by_status"]["active"] == 1
        assert stats["jobs"]["by_status"]["active"] == 1
        assert stats["applications"]["by_status"]["pending"] == 1

        users = await marketplace.discovery.search_users(admin, UserFilter(q="lovelace"), SortSpec(), PageSpec())
        assert [row["id"] for row in users.items] == [candidate.actor_id]
        assert all("password_hash" not in row for row in users.items)

        with pytest.raises(RepositoryForbiddenError):
            await marketplace.discovery.statistics(employer)

    asyncio.run(scenario())
