from typing import Literal

from fastapi import APIRouter, Body, Depends, Query, status

from hirelane.api.deps import (
    get_account_service,
    get_application_lifecycle,
    get_category_catalog,
    get_company_verification,
    get_discovery,
    get_job_moderation,
)
from hirelane.api.errors import to_http_exception
from hirelane.api.routes.applications import (
    application_filter_params,
    application_sort_params,
    to_application_page,
)
from hirelane.api.routes.companies import company_filter_params, company_sort_params, to_company_page
from hirelane.api.routes.jobs import job_filter_params, job_sort_params, to_job_page
from hirelane.core.auth import Principal
from hirelane.core.security import get_principal
from hirelane.schemas.admin import StatisticsOut, UserStatusRequest
from hirelane.schemas.applications import ApplicationOut
from hirelane.schemas.auth import AccountStatusValue, UserOut, UserRole
from hirelane.schemas.categories import CategoryCreateRequest, CategoryOut, CategoryUpdateRequest
from hirelane.schemas.common import PageOut, SortDirection
from hirelane.schemas.companies import CompanyOut, CompanyStatusRequest, CompanyVerificationRequest
from hirelane.schemas.jobs import JobModerationRequest, JobOut, JobStatusRequest
from hirelane.services.accounts import AccountService
from hirelane.services.applications import ApplicationLifecycle
from hirelane.services.categories import CategoryCatalog
from hirelane.services.companies import CompanyVerification
from hirelane.services.discovery import (
    ApplicationFilter,
    CompanyFilter,
    DiscoveryEngine,
    JobFilter,
    SortSpec,
    UserFilter,
)
from hirelane.services.moderation import JobModeration
from hirelane.services.repository import RepositoryError
from hirelane.services.states import JobStatus

router = APIRouter()

UserSortKey = Literal["created_at", "email", "name", "role", "status"]


@router.get("/statistics", response_model=StatisticsOut)
async def statistics(
    principal: Principal = Depends(get_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
) -> StatisticsOut:
    try:
        stats = await discovery.statistics(principal)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return StatisticsOut(**stats)


# users


@router.get("/users", response_model=PageOut[UserOut])
async def list_users(
    principal: Principal = Depends(get_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
    q: str | None = Query(default=None, max_length=200),
    role: UserRole | None = Query(default=None),
    account_status: AccountStatusValue | None = Query(default=None, alias="status"),
    sort: UserSortKey = Query(default="created_at"),
    direction: SortDirection = Query(default="desc"),
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1),
) -> PageOut[UserOut]:
    try:
        page = await discovery.search_users(
            principal,
            UserFilter(q=q, role=role, status=account_status),
            SortSpec(key=sort, direction=direction),
            discovery.page_spec(offset, limit),
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return PageOut[UserOut](
        items=[UserOut(**row) for row in page.items],
        total=page.total,
        offset=page.offset,
        limit=page.limit,
    )


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    principal: Principal = Depends(get_principal),
    accounts: AccountService = Depends(get_account_service),
) -> UserOut:
    try:
        user = await accounts.get_user(principal, user_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return UserOut(**user)


@router.patch("/users/{user_id}/status", response_model=UserOut)
async def set_user_status(
    user_id: int,
    payload: UserStatusRequest,
    principal: Principal = Depends(get_principal),
    accounts: AccountService = Depends(get_account_service),
) -> UserOut:
    try:
        user = await accounts.set_user_status(principal, user_id, payload.status, note=payload.note)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return UserOut(**user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    principal: Principal = Depends(get_principal),
    accounts: AccountService = Depends(get_account_service),
) -> None:
    try:
        await accounts.delete_user(principal, user_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc


# categories


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreateRequest,
    principal: Principal = Depends(get_principal),
    categories: CategoryCatalog = Depends(get_category_catalog),
) -> CategoryOut:
    try:
        category = await categories.create_category(principal, payload.model_dump())
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CategoryOut(**category)


@router.put("/categories/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: int,
    payload: CategoryUpdateRequest,
    principal: Principal = Depends(get_principal),
    categories: CategoryCatalog = Depends(get_category_catalog),
) -> CategoryOut:
    try:
        category = await categories.update_category(principal, category_id, payload.model_dump(exclude_unset=True))
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CategoryOut(**category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    principal: Principal = Depends(get_principal),
    categories: CategoryCatalog = Depends(get_category_catalog),
) -> None:
    try:
        await categories.delete_category(principal, category_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc


# companies


@router.get("/companies", response_model=PageOut[CompanyOut])
async def list_all_companies(
    principal: Principal = Depends(get_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
    filter_spec: CompanyFilter = Depends(company_filter_params),
    sort_spec: SortSpec = Depends(company_sort_params),
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1),
) -> PageOut[CompanyOut]:
    try:
        page = await discovery.search_companies(
            principal,
            filter_spec,
            sort_spec,
            discovery.page_spec(offset, limit),
            scope="all",
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_company_page(page)


@router.patch("/companies/{company_id}/status", response_model=CompanyOut)
async def set_company_status(
    company_id: int,
    payload: CompanyStatusRequest,
    principal: Principal = Depends(get_principal),
    companies: CompanyVerification = Depends(get_company_verification),
) -> CompanyOut:
    try:
        company = await companies.set_status(
            principal,
            company_id,
            payload.status,
            note=payload.note,
            expected_version=payload.expected_version,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CompanyOut(**company)


@router.patch("/companies/{company_id}/verification", response_model=CompanyOut)
async def set_company_verification(
    company_id: int,
    payload: CompanyVerificationRequest,
    principal: Principal = Depends(get_principal),
    companies: CompanyVerification = Depends(get_company_verification),
) -> CompanyOut:
    try:
        company = await companies.set_verified(
            principal,
            company_id,
            payload.verified,
            note=payload.note,
            expected_version=payload.expected_version,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CompanyOut(**company)


@router.delete("/companies/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: int,
    principal: Principal = Depends(get_principal),
    companies: CompanyVerification = Depends(get_company_verification),
) -> None:
    try:
        await companies.delete_company(principal, company_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc


# jobs


@router.get("/jobs", response_model=PageOut[JobOut])
async def list_all_jobs(
    principal: Principal = Depends(get_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
    filter_spec: JobFilter = Depends(job_filter_params),
    sort_spec: SortSpec = Depends(job_sort_params),
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1),
) -> PageOut[JobOut]:
    try:
        page = await discovery.search_jobs(
            principal,
            filter_spec,
            sort_spec,
            discovery.page_spec(offset, limit),
            scope="all",
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_job_page(page)


@router.get("/jobs/pending", response_model=PageOut[JobOut])
async def list_pending_jobs(
    principal: Principal = Depends(get_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
    filter_spec: JobFilter = Depends(job_filter_params),
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1),
) -> PageOut[JobOut]:
    filter_spec.status = JobStatus.PENDING.value
    try:
        page = await discovery.search_jobs(
            principal,
            filter_spec,
            SortSpec(key="created_at", direction="asc"),
            discovery.page_spec(offset, limit),
            scope="all",
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_job_page(page)


@router.post("/jobs/{job_id}/approve", response_model=JobOut)
async def approve_job(
    job_id: int,
    payload: JobModerationRequest | None = Body(default=None),
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> JobOut:
    payload = payload or JobModerationRequest()
    try:
        job = await moderation.approve(
            principal,
            job_id,
            note=payload.note,
            expected_version=payload.expected_version,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**job)


@router.post("/jobs/{job_id}/reject", response_model=JobOut)
async def reject_job(
    job_id: int,
    payload: JobModerationRequest | None = Body(default=None),
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> JobOut:
    payload = payload or JobModerationRequest()
    try:
        job = await moderation.reject(
            principal,
            job_id,
            note=payload.note,
            expected_version=payload.expected_version,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**job)


@router.patch("/jobs/{job_id}/status", response_model=JobOut)
async def admin_set_job_status(
    job_id: int,
    payload: JobStatusRequest,
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> JobOut:
    try:
        job = await moderation.set_status(
            principal,
            job_id,
            payload.status,
            note=payload.note,
            expected_version=payload.expected_version,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**job)


@router.delete("/jobs/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_job(
    job_id: int,
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> None:
    try:
        await moderation.delete_job(principal, job_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc


# applications


@router.get("/applications", response_model=PageOut[ApplicationOut])
async def list_all_applications(
    principal: Principal = Depends(get_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
    filter_spec: ApplicationFilter = Depends(application_filter_params),
    sort_spec: SortSpec = Depends(application_sort_params),
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1),
) -> PageOut[ApplicationOut]:
    try:
        page = await discovery.search_applications(
            principal,
            filter_spec,
            sort_spec,
            discovery.page_spec(offset, limit),
            scope="all",
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_application_page(page)


@router.delete("/applications/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> None:
    try:
        await lifecycle.delete(principal, application_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
