from __future__ import annotations

import asyncio
import copy
from itertools import count
from typing import Any

from hirelane.services.repository import (
    APPLICATION_MUTABLE_FIELDS,
    CATEGORY_MUTABLE_FIELDS,
    COMPANY_MUTABLE_FIELDS,
    JOB_MUTABLE_FIELDS,
    USER_MUTABLE_FIELDS,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryValidationError,
    blocks_reapplication,
    utcnow,
)

_COMPANY_DEFAULTS: dict[str, Any] = {
    "industry": None,
    "company_size": None,
    "city": None,
    "address": None,
    "website": None,
    "description": None,
    "logo": None,
    "banner": None,
}

_JOB_DEFAULTS: dict[str, Any] = {
    "description": None,
    "requirements": None,
    "benefits": None,
    "location": None,
    "city": None,
    "job_type": None,
    "experience_level": None,
    "salary_min": None,
    "salary_max": None,
    "tags": [],
    "remote": False,
    "featured": False,
    "deadline": None,
    "category_id": None,
    "status": "pending",
}


class InMemoryRepository:
    """Process-local repository with the same contract as the Postgres backend.

    Every mutation runs under a single lock, so each call is atomic with respect to the others
    and the duplicate/version checks hold under concurrent requests in one event loop.
    """

    def __init__(self) -> None:
        self.users: dict[int, dict[str, Any]] = {}
        self.companies: dict[int, dict[str, Any]] = {}
        self.jobs: dict[int, dict[str, Any]] = {}
        self.applications: dict[int, dict[str, Any]] = {}
        self.saved_jobs: dict[int, dict[str, Any]] = {}
        self.categories: dict[int, dict[str, Any]] = {}
        self.events: list[dict[str, Any]] = []
        self._ids = {
            name: count(1)
            for name in ("users", "companies", "jobs", "applications", "saved_jobs", "categories", "events")
        }
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        return None

    # users

    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        full_name: str,
        role: str,
        phone: str | None = None,
    ) -> dict[str, Any]:
        async with self._lock:
            if any(row["email"].lower() == email.lower() for row in self.users.values()):
                raise RepositoryConflictError("email already registered", reason="duplicate")
            now = utcnow()
            user_id = next(self._ids["users"])
            self.users[user_id] = {
                "id": user_id,
                "email": email,
                "password_hash": password_hash,
                "full_name": full_name,
                "phone": phone,
                "role": role,
                "account_status": "active",
                "created_at": now,
                "updated_at": now,
            }
            return self._public_user(self.users[user_id])

    async def get_user(self, user_id: int) -> dict[str, Any]:
        row = self.users.get(user_id)
        if row is None:
            raise RepositoryNotFoundError("user not found")
        return self._public_user(row)

    async def get_user_credentials(self, email: str) -> dict[str, Any] | None:
        for row in self.users.values():
            if row["email"].lower() == email.lower():
                return {
                    "id": row["id"],
                    "email": row["email"],
                    "password_hash": row["password_hash"],
                    "account_status": row["account_status"],
                }
        return None

    async def get_user_password_hash(self, user_id: int) -> str:
        row = self.users.get(user_id)
        if row is None:
            raise RepositoryNotFoundError("user not found")
        return row["password_hash"]

    async def update_user(self, user_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            row = self._apply_update(
                self.users,
                user_id,
                changes,
                allowed=USER_MUTABLE_FIELDS,
                entity="user",
                expected_version=None,
                versioned=False,
            )
            return self._public_user(row)

    async def delete_user(self, user_id: int) -> None:
        async with self._lock:
            if user_id not in self.users:
                raise RepositoryNotFoundError("user not found")
            del self.users[user_id]
            for company_id in [cid for cid, row in self.companies.items() if row["owner_user_id"] == user_id]:
                self._delete_company_cascade(company_id)
            for application_id in [aid for aid, row in self.applications.items() if row["candidate_id"] == user_id]:
                del self.applications[application_id]
            for saved_id in [sid for sid, row in self.saved_jobs.items() if row["candidate_id"] == user_id]:
                del self.saved_jobs[saved_id]

    async def list_user_rows(self) -> list[dict[str, Any]]:
        return [self._public_user(row) for _, row in sorted(self.users.items())]

    # companies

    async def create_company(self, *, owner_user_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        self._check_fields(fields, COMPANY_MUTABLE_FIELDS - {"status", "verified"}, entity="company")
        async with self._lock:
            if owner_user_id not in self.users:
                raise RepositoryNotFoundError("owner not found")
            if any(row["owner_user_id"] == owner_user_id for row in self.companies.values()):
                raise RepositoryConflictError("employer already owns a company", reason="duplicate")
            now = utcnow()
            company_id = next(self._ids["companies"])
            self.companies[company_id] = {
                **_COMPANY_DEFAULTS,
                **copy.deepcopy(fields),
                "id": company_id,
                "owner_user_id": owner_user_id,
                "verified": False,
                "status": "pending",
                "version": 1,
                "created_at": now,
                "updated_at": now,
            }
            return self._company_view(self.companies[company_id])

    async def get_company(self, company_id: int) -> dict[str, Any]:
        row = self.companies.get(company_id)
        if row is None:
            raise RepositoryNotFoundError("company not found")
        return self._company_view(row)

    async def get_company_by_owner(self, owner_user_id: int) -> dict[str, Any] | None:
        for row in self.companies.values():
            if row["owner_user_id"] == owner_user_id:
                return self._company_view(row)
        return None

    async def update_company(
        self,
        company_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        async with self._lock:
            row = self._apply_update(
                self.companies,
                company_id,
                changes,
                allowed=COMPANY_MUTABLE_FIELDS,
                entity="company",
                expected_version=expected_version,
            )
            return self._company_view(row)

    async def delete_company(self, company_id: int) -> None:
        async with self._lock:
            if company_id not in self.companies:
                raise RepositoryNotFoundError("company not found")
            self._delete_company_cascade(company_id)

    async def list_company_rows(self) -> list[dict[str, Any]]:
        return [self._company_view(row) for _, row in sorted(self.companies.items())]

    # jobs

    async def create_job(self, *, company_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        self._check_fields(fields, JOB_MUTABLE_FIELDS, entity="job")
        async with self._lock:
            if company_id not in self.companies:
                raise RepositoryNotFoundError("company not found")
            self._check_category(fields.get("category_id"))
            now = utcnow()
            job_id = next(self._ids["jobs"])
            row = {
                **copy.deepcopy(_JOB_DEFAULTS),
                **copy.deepcopy(fields),
                "id": job_id,
                "company_id": company_id,
                "views": 0,
                "version": 1,
                "created_at": now,
                "updated_at": now,
            }
            self._check_salary_range(row)
            self.jobs[job_id] = row
            return self._job_view(row)

    async def get_job(self, job_id: int) -> dict[str, Any]:
        row = self.jobs.get(job_id)
        if row is None:
            raise RepositoryNotFoundError("job not found")
        return self._job_view(row)

    async def update_job(
        self,
        job_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        async with self._lock:
            current = self.jobs.get(job_id)
            if current is not None:
                self._check_salary_range({**current, **changes})
            if "category_id" in changes:
                self._check_category(changes["category_id"])
            row = self._apply_update(
                self.jobs,
                job_id,
                changes,
                allowed=JOB_MUTABLE_FIELDS,
                entity="job",
                expected_version=expected_version,
            )
            return self._job_view(row)

    async def increment_job_views(self, job_id: int) -> None:
        async with self._lock:
            row = self.jobs.get(job_id)
            if row is not None:
                row["views"] += 1

    async def delete_job(self, job_id: int) -> None:
        async with self._lock:
            if job_id not in self.jobs:
                raise RepositoryNotFoundError("job not found")
            self._delete_job_cascade(job_id)

    async def list_job_rows(self) -> list[dict[str, Any]]:
        return [self._job_view(row) for _, row in sorted(self.jobs.items())]

    # categories

    async def create_category(self, *, fields: dict[str, Any]) -> dict[str, Any]:
        self._check_fields(fields, CATEGORY_MUTABLE_FIELDS, entity="category")
        async with self._lock:
            self._check_category_name(fields.get("name"), category_id=None)
            now = utcnow()
            category_id = next(self._ids["categories"])
            self.categories[category_id] = {
                "id": category_id,
                "name": fields.get("name"),
                "description": fields.get("description"),
                "created_at": now,
                "updated_at": now,
            }
            return self._category_view(self.categories[category_id])

    async def get_category(self, category_id: int) -> dict[str, Any]:
        row = self.categories.get(category_id)
        if row is None:
            raise RepositoryNotFoundError("category not found")
        return self._category_view(row)

    async def update_category(self, category_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            if "name" in changes and category_id in self.categories:
                self._check_category_name(changes["name"], category_id=category_id)
            row = self._apply_update(
                self.categories,
                category_id,
                changes,
                allowed=CATEGORY_MUTABLE_FIELDS,
                entity="category",
                expected_version=None,
                versioned=False,
            )
            return self._category_view(row)

    async def delete_category(self, category_id: int) -> None:
        async with self._lock:
            if category_id not in self.categories:
                raise RepositoryNotFoundError("category not found")
            del self.categories[category_id]
            for row in self.jobs.values():
                if row["category_id"] == category_id:
                    row["category_id"] = None

    async def list_category_rows(self) -> list[dict[str, Any]]:
        rows = [self._category_view(row) for row in self.categories.values()]
        rows.sort(key=lambda row: (row["name"].lower(), row["id"]))
        return rows

    # applications

    async def create_application(
        self,
        *,
        job_id: int,
        candidate_id: int,
        fields: dict[str, Any],
        reapply_policy: str,
    ) -> dict[str, Any]:
        async with self._lock:
            if job_id not in self.jobs or candidate_id not in self.users:
                raise RepositoryNotFoundError("job or candidate not found")
            existing = [
                row
                for row in self.applications.values()
                if row["candidate_id"] == candidate_id and row["job_id"] == job_id
            ]
            if any(blocks_reapplication(row["status"], reapply_policy) for row in existing):
                raise RepositoryConflictError("application already exists for this job", reason="duplicate")
            now = utcnow()
            application_id = next(self._ids["applications"])
            self.applications[application_id] = {
                "id": application_id,
                "job_id": job_id,
                "candidate_id": candidate_id,
                "cv_file": fields.get("cv_file"),
                "cover_letter": fields.get("cover_letter"),
                "expected_salary": fields.get("expected_salary"),
                "status": "pending",
                "notes": None,
                "reviewed_at": None,
                "version": 1,
                "created_at": now,
                "updated_at": now,
            }
            return self._application_view(self.applications[application_id])

    async def get_application(self, application_id: int) -> dict[str, Any]:
        row = self.applications.get(application_id)
        if row is None:
            raise RepositoryNotFoundError("application not found")
        return self._application_view(row)

    async def list_applications_for_pair(self, *, candidate_id: int, job_id: int) -> list[dict[str, Any]]:
        return [
            self._application_view(row)
            for _, row in sorted(self.applications.items())
            if row["candidate_id"] == candidate_id and row["job_id"] == job_id
        ]

    async def update_application(
        self,
        application_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        async with self._lock:
            row = self._apply_update(
                self.applications,
                application_id,
                changes,
                allowed=APPLICATION_MUTABLE_FIELDS,
                entity="application",
                expected_version=expected_version,
            )
            return self._application_view(row)

    async def delete_application(self, application_id: int) -> None:
        async with self._lock:
            if application_id not in self.applications:
                raise RepositoryNotFoundError("application not found")
            del self.applications[application_id]

    async def list_application_rows(self) -> list[dict[str, Any]]:
        return [self._application_view(row) for _, row in sorted(self.applications.items())]

    # saved jobs

    async def save_job(self, *, candidate_id: int, job_id: int) -> dict[str, Any]:
        async with self._lock:
            if job_id not in self.jobs:
                raise RepositoryNotFoundError("job not found")
            for row in self.saved_jobs.values():
                if row["candidate_id"] == candidate_id and row["job_id"] == job_id:
                    return dict(row)
            saved_id = next(self._ids["saved_jobs"])
            self.saved_jobs[saved_id] = {
                "id": saved_id,
                "candidate_id": candidate_id,
                "job_id": job_id,
                "created_at": utcnow(),
            }
            return dict(self.saved_jobs[saved_id])

    async def unsave_job(self, *, candidate_id: int, job_id: int) -> bool:
        async with self._lock:
            for saved_id, row in list(self.saved_jobs.items()):
                if row["candidate_id"] == candidate_id and row["job_id"] == job_id:
                    del self.saved_jobs[saved_id]
                    return True
            return False

    async def list_saved_job_rows(self, candidate_id: int) -> list[dict[str, Any]]:
        rows = [
            {**row, "job": self._job_view(self.jobs[row["job_id"]])}
            for row in self.saved_jobs.values()
            if row["candidate_id"] == candidate_id and row["job_id"] in self.jobs
        ]
        rows.sort(key=lambda row: row["id"])
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return rows

    # audit trail

    async def record_event(
        self,
        *,
        entity_type: str,
        entity_id: int,
        event_type: str,
        actor_id: int | None,
        from_status: str | None = None,
        to_status: str | None = None,
        note: str | None = None,
    ) -> dict[str, Any]:
        async with self._lock:
            event = {
                "id": next(self._ids["events"]),
                "entity_type": entity_type,
                "entity_id": entity_id,
                "event_type": event_type,
                "actor_id": actor_id,
                "from_status": from_status,
                "to_status": to_status,
                "note": note,
                "created_at": utcnow(),
            }
            self.events.append(event)
            return dict(event)

    async def list_events(self, *, entity_type: str, entity_id: int) -> list[dict[str, Any]]:
        return [
            dict(row)
            for row in self.events
            if row["entity_type"] == entity_type and row["entity_id"] == entity_id
        ]

    # helpers

    def _apply_update(
        self,
        table: dict[int, dict[str, Any]],
        row_id: int,
        changes: dict[str, Any],
        *,
        allowed: set[str],
        entity: str,
        expected_version: int | None,
        versioned: bool = True,
    ) -> dict[str, Any]:
        self._check_fields(changes, allowed, entity=entity)
        row = table.get(row_id)
        if row is None:
            raise RepositoryNotFoundError(f"{entity} not found")
        if versioned and expected_version is not None and row["version"] != expected_version:
            raise RepositoryConflictError(f"{entity} was modified by another request", reason="stale_write")
        row.update(copy.deepcopy(changes))
        row["updated_at"] = utcnow()
        if versioned:
            row["version"] += 1
        return row

    def _delete_company_cascade(self, company_id: int) -> None:
        del self.companies[company_id]
        for job_id in [jid for jid, row in self.jobs.items() if row["company_id"] == company_id]:
            self._delete_job_cascade(job_id)

    def _delete_job_cascade(self, job_id: int) -> None:
        del self.jobs[job_id]
        for application_id in [aid for aid, row in self.applications.items() if row["job_id"] == job_id]:
            del self.applications[application_id]
        for saved_id in [sid for sid, row in self.saved_jobs.items() if row["job_id"] == job_id]:
            del self.saved_jobs[saved_id]

    def _check_category(self, category_id: int | None) -> None:
        if category_id is not None and category_id not in self.categories:
            raise RepositoryNotFoundError("category not found")

    def _check_category_name(self, name: str | None, *, category_id: int | None) -> None:
        for row in self.categories.values():
            if row["id"] != category_id and name is not None and row["name"].lower() == name.lower():
                raise RepositoryConflictError("category name already exists", reason="duplicate")

    @staticmethod
    def _check_fields(fields: dict[str, Any], allowed: set[str], *, entity: str) -> None:
        unsupported = sorted(set(fields) - allowed)
        if unsupported:
            raise RepositoryValidationError(f"unsupported {entity} fields: {', '.join(unsupported)}")

    @staticmethod
    def _check_salary_range(row: dict[str, Any]) -> None:
        low, high = row.get("salary_min"), row.get("salary_max")
        if low is not None and high is not None and low > high:
            raise RepositoryValidationError("salary_min must not exceed salary_max")

    @staticmethod
    def _public_user(row: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in row.items() if key != "password_hash"}

    def _company_view(self, row: dict[str, Any]) -> dict[str, Any]:
        jobs = [job for job in self.jobs.values() if job["company_id"] == row["id"]]
        return {
            **copy.deepcopy(row),
            "job_count": len(jobs),
            "active_job_count": sum(1 for job in jobs if job["status"] == "active"),
        }

    def _category_view(self, row: dict[str, Any]) -> dict[str, Any]:
        return {
            **dict(row),
            "active_job_count": sum(
                1 for job in self.jobs.values() if job["category_id"] == row["id"] and job["status"] == "active"
            ),
        }

    def _job_view(self, row: dict[str, Any]) -> dict[str, Any]:
        company = self.companies[row["company_id"]]
        return {
            **copy.deepcopy(row),
            "company_name": company["company_name"],
            "company_verified": company["verified"],
            "company_status": company["status"],
            "owner_user_id": company["owner_user_id"],
            "company_logo": company["logo"],
            "category_name": self.categories[row["category_id"]]["name"] if row["category_id"] is not None else None,
            "applicant_count": sum(
                1
                for application in self.applications.values()
                if application["job_id"] == row["id"] and application["status"] != "withdrawn"
            ),
        }

    def _application_view(self, row: dict[str, Any]) -> dict[str, Any]:
        candidate = self.users.get(row["candidate_id"], {})
        job = self.jobs[row["job_id"]]
        company = self.companies[job["company_id"]]
        return {
            **dict(row),
            "candidate_name": candidate.get("full_name"),
            "candidate_email": candidate.get("email"),
            "job_title": job["title"],
            "company_id": job["company_id"],
            "company_name": company["company_name"],
            "owner_user_id": company["owner_user_id"],
        }
