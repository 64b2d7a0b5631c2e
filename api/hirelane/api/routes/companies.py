from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from hirelane.api.deps import get_company_verification, get_discovery
from hirelane.api.errors import to_http_exception
from hirelane.core.auth import Principal
from hirelane.core.security import get_optional_principal, get_principal
from hirelane.schemas.common import PageOut, SortDirection
from hirelane.schemas.companies import (
    CompanyCreateRequest,
    CompanyOut,
    CompanyStatusValue,
    CompanyUpdateRequest,
)
from hirelane.services.companies import CompanyVerification
from hirelane.services.discovery import CompanyFilter, DiscoveryEngine, Page, SortSpec
from hirelane.services.repository import RepositoryError

router = APIRouter()

CompanySortKey = Literal["created_at", "name", "status", "jobs"]


def company_filter_params(
    q: str | None = Query(default=None, max_length=200),
    status: CompanyStatusValue | None = Query(default=None),
    verified: bool | None = Query(default=None),
    industry: str | None = Query(default=None),
    city: str | None = Query(default=None),
) -> CompanyFilter:
    return CompanyFilter(q=q, status=status, verified=verified, industry=industry, city=city)


def company_sort_params(
    sort: CompanySortKey = Query(default="created_at"),
    direction: SortDirection = Query(default="desc"),
) -> SortSpec:
    return SortSpec(key=sort, direction=direction)


def to_company_page(page: Page) -> PageOut[CompanyOut]:
    return PageOut[CompanyOut](
        items=[CompanyOut(**row) for row in page.items],
        total=page.total,
        offset=page.offset,
        limit=page.limit,
    )


@router.get("", response_model=PageOut[CompanyOut])
async def list_companies(
    principal: Principal | None = Depends(get_optional_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
    filter_spec: CompanyFilter = Depends(company_filter_params),
    sort_spec: SortSpec = Depends(company_sort_params),
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1),
) -> PageOut[CompanyOut]:
    try:
        page = await discovery.search_companies(principal, filter_spec, sort_spec, discovery.page_spec(offset, limit))
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_company_page(page)


@router.get("/mine", response_model=CompanyOut)
async def get_my_company(
    principal: Principal = Depends(get_principal),
    companies: CompanyVerification = Depends(get_company_verification),
) -> CompanyOut:
    try:
        company = await companies.get_my_company(principal)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CompanyOut(**company)


@router.post("", response_model=CompanyOut, status_code=status.HTTP_201_CREATED)
async def create_company(
    payload: CompanyCreateRequest,
    principal: Principal = Depends(get_principal),
    companies: CompanyVerification = Depends(get_company_verification),
) -> CompanyOut:
    try:
        company = await companies.create_company(principal, payload.model_dump())
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CompanyOut(**company)


@router.put("/mine", response_model=CompanyOut)
async def update_my_company(
    payload: CompanyUpdateRequest,
    principal: Principal = Depends(get_principal),
    companies: CompanyVerification = Depends(get_company_verification),
) -> CompanyOut:
    fields = payload.model_dump(exclude_unset=True, exclude={"expected_version"})
    try:
        company = await companies.get_my_company(principal)
        updated = await companies.update_company(
            principal,
            company["id"],
            fields,
            expected_version=payload.expected_version,
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CompanyOut(**updated)


@router.get("/{company_id}", response_model=CompanyOut)
async def get_company(
    company_id: int,
    principal: Principal | None = Depends(get_optional_principal),
    companies: CompanyVerification = Depends(get_company_verification),
) -> CompanyOut:
    try:
        company = await companies.get_company(principal, company_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CompanyOut(**company)
