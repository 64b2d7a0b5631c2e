from fastapi import APIRouter, Body, Depends, Query, status

from hirelane.api.deps import get_application_lifecycle, get_discovery
from hirelane.api.errors import to_http_exception
from hirelane.core.auth import Principal
from hirelane.core.security import get_principal
from hirelane.schemas.applications import (
    ApplicationOut,
    ApplicationSortKey,
    ApplicationStatusRequest,
    ApplicationStatusValue,
    ApplicationSummaryOut,
    ApplyRequest,
    WithdrawRequest,
)
from hirelane.schemas.common import PageOut, SortDirection, StatusEventOut, TransitionsOut
from hirelane.services.applications import ApplicationLifecycle
from hirelane.services.discovery import ApplicationFilter, DiscoveryEngine, Page, SortSpec
from hirelane.services.repository import RepositoryError

router = APIRouter()


def application_filter_params(
    q: str | None = Query(default=None, max_length=200),
    status: ApplicationStatusValue | None = Query(default=None),
    job_id: int | None = Query(default=None, ge=1),
    company_id: int | None = Query(default=None, ge=1),
    candidate_id: int | None = Query(default=None, ge=1),
) -> ApplicationFilter:
    return ApplicationFilter(q=q, status=status, job_id=job_id, company_id=company_id, candidate_id=candidate_id)


def application_sort_params(
    sort: ApplicationSortKey = Query(default="created_at"),
    direction: SortDirection = Query(default="desc"),
) -> SortSpec:
    return SortSpec(key=sort, direction=direction)


def to_application_page(page: Page) -> PageOut[ApplicationOut]:
    return PageOut[ApplicationOut](
        items=[ApplicationOut(**row) for row in page.items],
        total=page.total,
        offset=page.offset,
        limit=page.limit,
    )


@router.post("", response_model=ApplicationOut, status_code=status.HTTP_201_CREATED)
async def apply(
    payload: ApplyRequest,
    principal: Principal = Depends(get_principal),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> ApplicationOut:
    try:
        application = await lifecycle.apply(
            principal,
            job_id=payload.job_id,
            cv_file=payload.cv_file,
            cover_letter=payload.cover_letter,
            expected_salary=payload.expected_salary,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return ApplicationOut(**application)


@router.get("/mine", response_model=PageOut[ApplicationOut])
async def list_my_applications(
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
            scope="mine",
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_application_page(page)


@router.get("/company", response_model=PageOut[ApplicationOut])
async def list_company_applications(
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
            scope="company",
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_application_page(page)


@router.get("/summary", response_model=ApplicationSummaryOut)
async def application_summary(
    principal: Principal = Depends(get_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
) -> ApplicationSummaryOut:
    try:
        summary = await discovery.application_summary(principal)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return ApplicationSummaryOut(**summary)


@router.get("/{application_id}", response_model=ApplicationOut)
async def get_application(
    application_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> ApplicationOut:
    try:
        application = await lifecycle.get(principal, application_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return ApplicationOut(**application)


@router.get("/{application_id}/history", response_model=list[StatusEventOut])
async def get_application_history(
    application_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> list[StatusEventOut]:
    try:
        events = await lifecycle.history(principal, application_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return [StatusEventOut(**event) for event in events]


@router.get("/{application_id}/transitions", response_model=TransitionsOut)
async def get_application_transitions(
    application_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> TransitionsOut:
    try:
        application = await lifecycle.get(principal, application_id)
        allowed = await lifecycle.allowed_transitions(principal, application_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return TransitionsOut(current_status=application["status"], allowed=allowed)


@router.put("/{application_id}/status", response_model=ApplicationOut)
async def update_application_status(
    application_id: int,
    payload: ApplicationStatusRequest,
    principal: Principal = Depends(get_principal),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> ApplicationOut:
    try:
        application = await lifecycle.update_status(
            principal,
            application_id,
            payload.status,
            note=payload.note,
            expected_version=payload.expected_version,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return ApplicationOut(**application)


@router.post("/{application_id}/withdraw", response_model=ApplicationOut)
async def withdraw_application(
    application_id: int,
    payload: WithdrawRequest | None = Body(default=None),
    principal: Principal = Depends(get_principal),
    lifecycle: ApplicationLifecycle = Depends(get_application_lifecycle),
) -> ApplicationOut:
    payload = payload or WithdrawRequest()
    try:
        application = await lifecycle.withdraw(
            principal,
            application_id,
            note=payload.note,
            expected_version=payload.expected_version,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return ApplicationOut(**application)
