from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from hirelane.core.config import get_settings


class RepositoryError(Exception):
    """Base repository error."""

    code = "error"

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""

    code = "unavailable"


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""

    code = "not_found"


class RepositoryConflictError(RepositoryError):
    """Raised on duplicate records or stale versioned writes."""

    code = "conflict"


class RepositoryForbiddenError(RepositoryError):
    """Raised when an operation is not permitted for the actor."""

    code = "forbidden"


class RepositoryUnauthorizedError(RepositoryError):
    """Raised when credentials are missing or invalid."""

    code = "unauthorized"


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""

    code = "validation"


USER_MUTABLE_FIELDS = {"full_name", "phone", "account_status", "password_hash"}
COMPANY_MUTABLE_FIELDS = {
    "company_name",
    "industry",
    "company_size",
    "city",
    "address",
    "website",
    "description",
    "logo",
    "banner",
    "status",
    "verified",
}
JOB_MUTABLE_FIELDS = {
    "title",
    "description",
    "requirements",
    "benefits",
    "location",
    "city",
    "job_type",
    "experience_level",
    "salary_min",
    "salary_max",
    "tags",
    "remote",
    "featured",
    "deadline",
    "category_id",
    "status",
}
APPLICATION_MUTABLE_FIELDS = {"status", "notes", "reviewed_at"}
CATEGORY_MUTABLE_FIELDS = {"name", "description"}

_ENUM_CASTS = {
    "users": {"account_status": "::account_status", "role": "::user_role"},
    "companies": {"status": "::company_status"},
    "jobs": {"status": "::job_status"},
    "applications": {"status": "::application_status"},
}

USER_SELECT_SQL = """
select
  u.id,
  u.email,
  u.full_name,
  u.phone,
  u.role::text as role,
  u.account_status::text as account_status,
  u.created_at,
  u.updated_at
from users u
"""

COMPANY_SELECT_SQL = """
select
  c.id,
  c.owner_user_id,
  c.company_name,
  c.industry,
  c.company_size,
  c.city,
  c.address,
  c.website,
  c.description,
  c.logo,
  c.banner,
  c.verified,
  c.status::text as status,
  c.version,
  c.created_at,
  c.updated_at,
  coalesce(jc.job_count, 0) as job_count,
  coalesce(jc.active_job_count, 0) as active_job_count
from companies c
left join (
  select
    company_id,
    count(*) as job_count,
    count(*) filter (where status = 'active') as active_job_count
  from jobs
  group by company_id
) jc on jc.company_id = c.id
"""

JOB_SELECT_SQL = """
select
  j.id,
  j.company_id,
  j.title,
  j.description,
  j.requirements,
  j.benefits,
  j.location,
  j.city,
  j.job_type,
  j.experience_level,
  j.salary_min,
  j.salary_max,
  j.tags,
  j.remote,
  j.featured,
  j.deadline,
  j.category_id,
  cat.name as category_name,
  j.status::text as status,
  j.views,
  j.version,
  j.created_at,
  j.updated_at,
  c.company_name,
  c.verified as company_verified,
  c.status::text as company_status,
  c.owner_user_id,
  c.logo as company_logo,
  coalesce(ac.applicant_count, 0) as applicant_count
from jobs j
join companies c on c.id = j.company_id
left join categories cat on cat.id = j.category_id
left join (
  select job_id, count(*) as applicant_count
  from applications
  where status <> 'withdrawn'
  group by job_id
) ac on ac.job_id = j.id
"""

CATEGORY_SELECT_SQL = """
select
  cat.id,
  cat.name,
  cat.description,
  cat.created_at,
  cat.updated_at,
  coalesce(jc.active_job_count, 0) as active_job_count
from categories cat
left join (
  select category_id, count(*) as active_job_count
  from jobs
  where status = 'active'
  group by category_id
) jc on jc.category_id = cat.id
"""

APPLICATION_SELECT_SQL = """
select
  a.id,
  a.job_id,
  a.candidate_id,
  a.cv_file,
  a.cover_letter,
  a.expected_salary,
  a.status::text as status,
  a.notes,
  a.reviewed_at,
  a.version,
  a.created_at,
  a.updated_at,
  u.full_name as candidate_name,
  u.email as candidate_email,
  j.title as job_title,
  j.company_id,
  c.company_name,
  c.owner_user_id
from applications a
join users u on u.id = a.candidate_id
join jobs j on j.id = a.job_id
join companies c on c.id = j.company_id
"""


def blocks_reapplication(status: str, reapply_policy: str) -> bool:
    """Whether an existing application in ``status`` prevents a new one for the same pair."""
    if reapply_policy == "never":
        return True
    return status != "withdrawn"


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

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
        pool = await self._get_pool()
        try:
            user_id = await pool.fetchval(
                """
                insert into users (email, password_hash, full_name, phone, role)
                values ($1, $2, $3, $4, $5::user_role)
                returning id
                """,
                email,
                password_hash,
                full_name,
                phone,
                role,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError("email already registered", reason="duplicate") from exc
        return await self.get_user(user_id)

    async def get_user(self, user_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(f"{USER_SELECT_SQL} where u.id = $1", user_id)
        if not row:
            raise RepositoryNotFoundError("user not found")
        return self._user_row_to_dict(row)

    async def get_user_credentials(self, email: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            """
            select id, email, password_hash, account_status::text as account_status
            from users
            where lower(email) = lower($1)
            """,
            email,
        )
        return dict(row) if row else None

    async def get_user_password_hash(self, user_id: int) -> str:
        pool = await self._get_pool()
        password_hash = await pool.fetchval("select password_hash from users where id = $1", user_id)
        if password_hash is None:
            raise RepositoryNotFoundError("user not found")
        return str(password_hash)

    async def update_user(self, user_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await self._update_row(
                conn,
                table="users",
                entity="user",
                row_id=user_id,
                changes=changes,
                allowed=USER_MUTABLE_FIELDS,
                expected_version=None,
                versioned=False,
            )
        return await self.get_user(user_id)

    async def delete_user(self, user_id: int) -> None:
        pool = await self._get_pool()
        deleted = await pool.fetchval("delete from users where id = $1 returning id", user_id)
        if deleted is None:
            raise RepositoryNotFoundError("user not found")

    async def list_user_rows(self) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(f"{USER_SELECT_SQL} order by u.id")
        return [self._user_row_to_dict(row) for row in rows]

    # companies

    async def create_company(self, *, owner_user_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        self._check_fields(fields, COMPANY_MUTABLE_FIELDS - {"status", "verified"}, entity="company")
        pool = await self._get_pool()
        columns = ["owner_user_id", *fields.keys()]
        placeholders = [f"${index}" for index in range(1, len(columns) + 1)]
        try:
            company_id = await pool.fetchval(
                f"""
                insert into companies ({", ".join(columns)})
                values ({", ".join(placeholders)})
                returning id
                """,
                owner_user_id,
                *fields.values(),
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError("employer already owns a company", reason="duplicate") from exc
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError("owner not found") from exc
        return await self.get_company(company_id)

    async def get_company(self, company_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(f"{COMPANY_SELECT_SQL} where c.id = $1", company_id)
        if not row:
            raise RepositoryNotFoundError("company not found")
        return self._company_row_to_dict(row)

    async def get_company_by_owner(self, owner_user_id: int) -> dict[str, Any] | None:
        pool = await self._get_pool()
        row = await pool.fetchrow(f"{COMPANY_SELECT_SQL} where c.owner_user_id = $1", owner_user_id)
        return self._company_row_to_dict(row) if row else None

    async def update_company(
        self,
        company_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await self._update_row(
                conn,
                table="companies",
                entity="company",
                row_id=company_id,
                changes=changes,
                allowed=COMPANY_MUTABLE_FIELDS,
                expected_version=expected_version,
            )
        return await self.get_company(company_id)

    async def delete_company(self, company_id: int) -> None:
        pool = await self._get_pool()
        deleted = await pool.fetchval("delete from companies where id = $1 returning id", company_id)
        if deleted is None:
            raise RepositoryNotFoundError("company not found")

    async def list_company_rows(self) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(f"{COMPANY_SELECT_SQL} order by c.id")
        return [self._company_row_to_dict(row) for row in rows]

    # jobs

    async def create_job(self, *, company_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        self._check_fields(fields, JOB_MUTABLE_FIELDS, entity="job")
        pool = await self._get_pool()
        columns = ["company_id", *fields.keys()]
        placeholders = [
            f"${index}{_ENUM_CASTS['jobs'].get(column, '')}" for index, column in enumerate(columns, start=1)
        ]
        try:
            job_id = await pool.fetchval(
                f"""
                insert into jobs ({", ".join(columns)})
                values ({", ".join(placeholders)})
                returning id
                """,
                company_id,
                *fields.values(),
            )
        except pg_exc.ForeignKeyViolationError as exc:
            if exc.constraint_name == "jobs_category_id_fkey":
                raise RepositoryNotFoundError("category not found") from exc
            raise RepositoryNotFoundError("company not found") from exc
        except pg_exc.CheckViolationError as exc:
            raise RepositoryValidationError("salary_min must not exceed salary_max") from exc
        return await self.get_job(job_id)

    async def get_job(self, job_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(f"{JOB_SELECT_SQL} where j.id = $1", job_id)
        if not row:
            raise RepositoryNotFoundError("job not found")
        return self._job_row_to_dict(row)

    async def update_job(
        self,
        job_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                await self._update_row(
                    conn,
                    table="jobs",
                    entity="job",
                    row_id=job_id,
                    changes=changes,
                    allowed=JOB_MUTABLE_FIELDS,
                    expected_version=expected_version,
                )
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError("category not found") from exc
        except pg_exc.CheckViolationError as exc:
            raise RepositoryValidationError("salary_min must not exceed salary_max") from exc
        return await self.get_job(job_id)

    async def increment_job_views(self, job_id: int) -> None:
        pool = await self._get_pool()
        await pool.execute("update jobs set views = views + 1 where id = $1", job_id)

    async def delete_job(self, job_id: int) -> None:
        pool = await self._get_pool()
        deleted = await pool.fetchval("delete from jobs where id = $1 returning id", job_id)
        if deleted is None:
            raise RepositoryNotFoundError("job not found")

    async def list_job_rows(self) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(f"{JOB_SELECT_SQL} order by j.id")
        return [self._job_row_to_dict(row) for row in rows]

    # categories

    async def create_category(self, *, fields: dict[str, Any]) -> dict[str, Any]:
        self._check_fields(fields, CATEGORY_MUTABLE_FIELDS, entity="category")
        pool = await self._get_pool()
        try:
            category_id = await pool.fetchval(
                "insert into categories (name, description) values ($1, $2) returning id",
                fields.get("name"),
                fields.get("description"),
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError("category name already exists", reason="duplicate") from exc
        return await self.get_category(category_id)

    async def get_category(self, category_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(f"{CATEGORY_SELECT_SQL} where cat.id = $1", category_id)
        if not row:
            raise RepositoryNotFoundError("category not found")
        return self._category_row_to_dict(row)

    async def update_category(self, category_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                await self._update_row(
                    conn,
                    table="categories",
                    entity="category",
                    row_id=category_id,
                    changes=changes,
                    allowed=CATEGORY_MUTABLE_FIELDS,
                    expected_version=None,
                    versioned=False,
                )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError("category name already exists", reason="duplicate") from exc
        return await self.get_category(category_id)

    async def delete_category(self, category_id: int) -> None:
        pool = await self._get_pool()
        deleted = await pool.fetchval("delete from categories where id = $1 returning id", category_id)
        if deleted is None:
            raise RepositoryNotFoundError("category not found")

    async def list_category_rows(self) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(f"{CATEGORY_SELECT_SQL} order by lower(cat.name), cat.id")
        return [self._category_row_to_dict(row) for row in rows]

    # applications

    async def create_application(
        self,
        *,
        job_id: int,
        candidate_id: int,
        fields: dict[str, Any],
        reapply_policy: str,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    existing = await conn.fetch(
                        """
                        select status::text as status
                        from applications
                        where candidate_id = $1 and job_id = $2
                        for update
                        """,
                        candidate_id,
                        job_id,
                    )
                    if any(blocks_reapplication(row["status"], reapply_policy) for row in existing):
                        raise RepositoryConflictError("application already exists for this job", reason="duplicate")

                    application_id = await conn.fetchval(
                        """
                        insert into applications (job_id, candidate_id, cv_file, cover_letter, expected_salary)
                        values ($1, $2, $3, $4, $5)
                        returning id
                        """,
                        job_id,
                        candidate_id,
                        fields.get("cv_file"),
                        fields.get("cover_letter"),
                        fields.get("expected_salary"),
                    )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError("application already exists for this job", reason="duplicate") from exc
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError("job or candidate not found") from exc
        return await self.get_application(application_id)

    async def get_application(self, application_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(f"{APPLICATION_SELECT_SQL} where a.id = $1", application_id)
        if not row:
            raise RepositoryNotFoundError("application not found")
        return self._application_row_to_dict(row)

    async def list_applications_for_pair(self, *, candidate_id: int, job_id: int) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            f"{APPLICATION_SELECT_SQL} where a.candidate_id = $1 and a.job_id = $2 order by a.id",
            candidate_id,
            job_id,
        )
        return [self._application_row_to_dict(row) for row in rows]

    async def update_application(
        self,
        application_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await self._update_row(
                conn,
                table="applications",
                entity="application",
                row_id=application_id,
                changes=changes,
                allowed=APPLICATION_MUTABLE_FIELDS,
                expected_version=expected_version,
            )
        return await self.get_application(application_id)

    async def delete_application(self, application_id: int) -> None:
        pool = await self._get_pool()
        deleted = await pool.fetchval("delete from applications where id = $1 returning id", application_id)
        if deleted is None:
            raise RepositoryNotFoundError("application not found")

    async def list_application_rows(self) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(f"{APPLICATION_SELECT_SQL} order by a.id")
        return [self._application_row_to_dict(row) for row in rows]

    # saved jobs

    async def save_job(self, *, candidate_id: int, job_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                with inserted as (
                  insert into saved_jobs (candidate_id, job_id)
                  values ($1, $2)
                  on conflict (candidate_id, job_id) do nothing
                  returning id, candidate_id, job_id, created_at
                )
                select id, candidate_id, job_id, created_at from inserted
                union all
                select id, candidate_id, job_id, created_at
                from saved_jobs
                where candidate_id = $1 and job_id = $2
                limit 1
                """,
                candidate_id,
                job_id,
            )
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError("job not found") from exc
        if not row:
            raise RepositoryNotFoundError("job not found")
        return dict(row)

    async def unsave_job(self, *, candidate_id: int, job_id: int) -> bool:
        pool = await self._get_pool()
        deleted = await pool.fetchval(
            "delete from saved_jobs where candidate_id = $1 and job_id = $2 returning id",
            candidate_id,
            job_id,
        )
        return deleted is not None

    async def list_saved_job_rows(self, candidate_id: int) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        saved_rows = await pool.fetch(
            """
            select s.id, s.candidate_id, s.job_id, s.created_at
            from saved_jobs s
            join jobs j on j.id = s.job_id
            where s.candidate_id = $1
            order by s.created_at desc, s.id asc
            """,
            candidate_id,
        )
        if not saved_rows:
            return []
        job_rows = await pool.fetch(
            f"{JOB_SELECT_SQL} where j.id = any($1::bigint[])",
            [row["job_id"] for row in saved_rows],
        )
        jobs_by_id = {row["id"]: self._job_row_to_dict(row) for row in job_rows}
        return [
            {**dict(row), "job": jobs_by_id[row["job_id"]]}
            for row in saved_rows
            if row["job_id"] in jobs_by_id
        ]

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
        pool = await self._get_pool()
        row = await pool.fetchrow(
            """
            insert into status_events (entity_type, entity_id, event_type, actor_id, from_status, to_status, note)
            values ($1, $2, $3, $4, $5, $6, $7)
            returning id, entity_type, entity_id, event_type, actor_id, from_status, to_status, note, created_at
            """,
            entity_type,
            entity_id,
            event_type,
            actor_id,
            from_status,
            to_status,
            note,
        )
        return dict(row)

    async def list_events(self, *, entity_type: str, entity_id: int) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            """
            select id, entity_type, entity_id, event_type, actor_id, from_status, to_status, note, created_at
            from status_events
            where entity_type = $1 and entity_id = $2
            order by created_at asc, id asc
            """,
            entity_type,
            entity_id,
        )
        return [dict(row) for row in rows]

    # helpers

    async def _update_row(
        self,
        conn: asyncpg.Connection,
        *,
        table: str,
        entity: str,
        row_id: int,
        changes: dict[str, Any],
        allowed: set[str],
        expected_version: int | None,
        versioned: bool = True,
    ) -> None:
        self._check_fields(changes, allowed, entity=entity)
        params: list[Any] = [row_id]

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        casts = _ENUM_CASTS.get(table, {})
        assignments = [f"{column} = {bind(value)}{casts.get(column, '')}" for column, value in changes.items()]
        assignments.append("updated_at = now()")
        version_sql = "true"
        if versioned:
            assignments.append("version = version + 1")
            if expected_version is not None:
                version_sql = f"version = {bind(expected_version)}"

        updated = await conn.fetchval(
            f"""
            update {table}
            set {", ".join(assignments)}
            where id = $1 and {version_sql}
            returning id
            """,
            *params,
        )
        if updated is not None:
            return

        exists = await conn.fetchval(f"select 1 from {table} where id = $1", row_id)
        if not exists:
            raise RepositoryNotFoundError(f"{entity} not found")
        raise RepositoryConflictError(f"{entity} was modified by another request", reason="stale_write")

    @staticmethod
    def _check_fields(fields: dict[str, Any], allowed: set[str], *, entity: str) -> None:
        unsupported = sorted(set(fields) - allowed)
        if unsupported:
            raise RepositoryValidationError(f"unsupported {entity} fields: {', '.join(unsupported)}")

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("HL_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _user_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "email": row["email"],
            "full_name": row["full_name"],
            "phone": row["phone"],
            "role": row["role"],
            "account_status": row["account_status"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _company_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        data = dict(row)
        data["verified"] = bool(row["verified"])
        data["job_count"] = int(row["job_count"])
        data["active_job_count"] = int(row["active_job_count"])
        return data

    @staticmethod
    def _job_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        data = dict(row)
        data["tags"] = list(row["tags"] or [])
        data["remote"] = bool(row["remote"])
        data["featured"] = bool(row["featured"])
        data["company_verified"] = bool(row["company_verified"])
        data["views"] = int(row["views"])
        data["applicant_count"] = int(row["applicant_count"])
        return data

    @staticmethod
    def _category_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        data = dict(row)
        data["active_job_count"] = int(row["active_job_count"])
        return data

    @staticmethod
    def _application_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return dict(row)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@lru_cache
def get_repository() -> Any:
    settings = get_settings()
    if settings.storage_backend == "postgres":
        return PostgresRepository(
            database_url=settings.database_url,
            min_pool_size=settings.database_pool_min_size,
            max_pool_size=settings.database_pool_max_size,
        )

    from hirelane.services.store import InMemoryRepository

    return InMemoryRepository()
