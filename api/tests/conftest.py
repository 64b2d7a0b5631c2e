from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from itertools import count
from typing import Any, Callable

import pytest

from hirelane.core.auth import Principal
from hirelane.core.security import principal_from_user
from hirelane.services.applications import ApplicationLifecycle
from hirelane.services.authorization import AuthorizationGate
from hirelane.services.categories import CategoryCatalog
from hirelane.services.companies import CompanyVerification
from hirelane.services.discovery import DiscoveryEngine
from hirelane.services.moderation import JobModeration
from hirelane.services.saved_jobs import SavedJobRegistry
from hirelane.services.store import InMemoryRepository


@dataclass
class Marketplace:
    repository: InMemoryRepository
    gate: AuthorizationGate
    applications: ApplicationLifecycle
    moderation: JobModeration
    companies: CompanyVerification
    discovery: DiscoveryEngine
    saved_jobs: SavedJobRegistry
    categories: CategoryCatalog
    _emails: Any = field(default_factory=lambda: count(1))
    _admin: Principal | None = None

    async def user(self, role: str = "candidate", *, full_name: str | None = None) -> Principal:
        number = next(self._emails)
        row = await self.repository.create_user(
            email=f"{role}{number}@example.com",
            password_hash="unused",
            full_name=full_name or f"{role.title()} {number}",
            role=role,
        )
        return principal_from_user(row)

    async def admin(self) -> Principal:
        if self._admin is None:
            self._admin = await self.user("admin")
        return self._admin

    async def employer(self, company_name: str = "Acme Labs", **fields: Any) -> tuple[Principal, dict[str, Any]]:
        employer = await self.user("employer")
        company = await self.companies.create_company(employer, {"company_name": company_name, **fields})
        company = await self.companies.set_status(await self.admin(), company["id"], "active")
        return employer, company

    async def pending_job(self, employer: Principal, title: str = "Backend Engineer", **fields: Any) -> dict[str, Any]:
        return await self.moderation.create_job(employer, {"title": title, **fields})

    async def active_job(self, employer: Principal, title: str = "Backend Engineer", **fields: Any) -> dict[str, Any]:
        job = await self.pending_job(employer, title, **fields)
        return await self.moderation.approve(await self.admin(), job["id"])

    async def apply(self, candidate: Principal, job: dict[str, Any], **fields: Any) -> dict[str, Any]:
        return await self.applications.apply(candidate, job_id=job["id"], cv_file="cv/resume.pdf", **fields)


@pytest.fixture
def build_marketplace() -> Callable[..., Marketplace]:
    def build(
        *,
        reapply_policy: str = "withdrawn_only",
        rejection_mode: str = "retain",
        concurrency_policy: str = "versioned",
        enforce_job_deadline: bool = False,
        today: date | None = None,
        max_page_size: int = 100,
    ) -> Marketplace:
        repository = InMemoryRepository()
        gate = AuthorizationGate(
            reapply_policy=reapply_policy,
            enforce_job_deadline=enforce_job_deadline,
            today=(lambda: today) if today else None,
        )
        return Marketplace(
            repository=repository,
            gate=gate,
            applications=ApplicationLifecycle(repository, gate, concurrency_policy=concurrency_policy),
            moderation=JobModeration(
                repository,
                gate,
                rejection_mode=rejection_mode,
                concurrency_policy=concurrency_policy,
            ),
            companies=CompanyVerification(repository, gate, concurrency_policy=concurrency_policy),
            discovery=DiscoveryEngine(repository, gate, default_page_size=20, max_page_size=max_page_size),
            saved_jobs=SavedJobRegistry(repository, gate),
            categories=CategoryCatalog(repository, gate),
        )

    return build


@pytest.fixture
def marketplace(build_marketplace: Callable[..., Marketplace]) -> Marketplace:
    return build_marketplace()
