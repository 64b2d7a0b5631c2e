from fastapi import Depends

from hirelane.core.config import Settings, get_settings
from hirelane.services.accounts import AccountService
from hirelane.services.applications import ApplicationLifecycle
from hirelane.services.authorization import AuthorizationGate
from hirelane.services.categories import CategoryCatalog
from hirelane.services.companies import CompanyVerification
from hirelane.services.discovery import DiscoveryEngine
from hirelane.services.moderation import JobModeration
from hirelane.services.repository import get_repository
from hirelane.services.saved_jobs import SavedJobRegistry


def get_gate(settings: Settings = Depends(get_settings)) -> AuthorizationGate:
    return AuthorizationGate(
        reapply_policy=settings.reapply_policy,
        enforce_job_deadline=settings.enforce_job_deadline,
    )


def get_application_lifecycle(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    gate: AuthorizationGate = Depends(get_gate),
) -> ApplicationLifecycle:
    return ApplicationLifecycle(repository, gate, concurrency_policy=settings.concurrency_policy)


def get_job_moderation(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    gate: AuthorizationGate = Depends(get_gate),
) -> JobModeration:
    return JobModeration(
        repository,
        gate,
        rejection_mode=settings.job_rejection_mode,
        concurrency_policy=settings.concurrency_policy,
    )


def get_company_verification(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    gate: AuthorizationGate = Depends(get_gate),
) -> CompanyVerification:
    return CompanyVerification(repository, gate, concurrency_policy=settings.concurrency_policy)


def get_account_service(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    gate: AuthorizationGate = Depends(get_gate),
) -> AccountService:
    return AccountService(repository, gate, settings)


def get_discovery(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    gate: AuthorizationGate = Depends(get_gate),
) -> DiscoveryEngine:
    return DiscoveryEngine(
        repository,
        gate,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def get_saved_jobs(
    repository=Depends(get_repository),
    gate: AuthorizationGate = Depends(get_gate),
) -> SavedJobRegistry:
    return SavedJobRegistry(repository, gate)


def get_category_catalog(
    repository=Depends(get_repository),
    gate: AuthorizationGate = Depends(get_gate),
) -> CategoryCatalog:
    return CategoryCatalog(repository, gate)
