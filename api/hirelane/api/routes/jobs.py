from fastapi import APIRouter, Depends, Query, status

from hirelane.api.deps import get_discovery, get_job_moderation
from hirelane.api.errors import to_http_exception
from hirelane.core.auth import Principal
from hirelane.core.security import get_optional_principal, get_principal
from hirelane.schemas.common import PageOut, SortDirection, StatusEventOut, TransitionsOut
from hirelane.schemas.jobs import (
    ExperienceLevel,
    JobCreateRequest,
    JobOut,
    JobSortKey,
    JobStatusRequest,
    JobStatusValue,
    JobType,
    JobUpdateRequest,
)
from hirelane.services.discovery import DiscoveryEngine, JobFilter, Page, SortSpec
from hirelane.services.moderation import JobModeration
from hirelane.services.repository import RepositoryError

router = APIRouter()


def job_filter_params(
    q: str | None = Query(default=None, max_length=200),
    status: JobStatusValue | None = Query(default=None),
    job_type: JobType | None = Query(default=None),
    experience_level: ExperienceLevel | None = Query(default=None),
    city: str | None = Query(default=None),
    company_id: int | None = Query(default=None, ge=1),
    category_id: int | None = Query(default=None, ge=1),
    salary_min: int | None = Query(default=None, ge=0),
    salary_max: int | None = Query(default=None, ge=0),
    remote: bool | None = Query(default=None),
    featured: bool | None = Query(default=None),
    verified: bool | None = Query(default=None),
    tag: str | None = Query(default=None),
) -> JobFilter:
    return JobFilter(
        q=q,
        status=status,
        job_type=job_type,
        experience_level=experience_level,
        city=city,
        company_id=company_id,
        category_id=category_id,
        salary_min=salary_min,
        salary_max=salary_max,
        remote=remote,
        featured=featured,
        verified=verified,
        tag=tag,
    )


def job_sort_params(
    sort: JobSortKey = Query(default="created_at"),
    direction: SortDirection = Query(default="desc"),
) -> SortSpec:
    return SortSpec(key=sort, direction=direction)


def to_job_page(page: Page) -> PageOut[JobOut]:
    return PageOut[JobOut](
        items=[JobOut(**row) for row in page.items],
        total=page.total,
        offset=page.offset,
        limit=page.limit,
    )


@router.get("", response_model=PageOut[JobOut])
async def list_jobs(
    principal: Principal | None = Depends(get_optional_principal),
    discovery: DiscoveryEngine = Depends(get_discovery),
    filter_spec: JobFilter = Depends(job_filter_params),
    sort_spec: SortSpec = Depends(job_sort_params),
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1),
) -> PageOut[JobOut]:
    try:
        page = await discovery.search_jobs(principal, filter_spec, sort_spec, discovery.page_spec(offset, limit))
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_job_page(page)


@router.get("/mine", response_model=PageOut[JobOut])
async def list_my_jobs(
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
            scope="mine",
        )
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return to_job_page(page)


@router.get("/{job_id}", response_model=JobOut)
async def get_job(
    job_id: int,
    principal: Principal | None = Depends(get_optional_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> JobOut:
    try:
        job = await moderation.get_job(principal, job_id)
        await moderation.record_view(principal, job)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**job)


@router.get("/{job_id}/transitions", response_model=TransitionsOut)
async def get_job_transitions(
    job_id: int,
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> TransitionsOut:
    try:
        job = await moderation.get_job(principal, job_id)
        allowed = await moderation.allowed_transitions(principal, job_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return TransitionsOut(current_status=job["status"], allowed=allowed)


@router.get("/{job_id}/history", response_model=list[StatusEventOut])
async def get_job_history(
    job_id: int,
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> list[StatusEventOut]:
    try:
        events = await moderation.history(principal, job_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return [StatusEventOut(**event) for event in events]


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreateRequest,
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> JobOut:
    try:
        job = await moderation.create_job(principal, payload.model_dump())
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**job)


@router.put("/{job_id}", response_model=JobOut)
async def update_job(
    job_id: int,
    payload: JobUpdateRequest,
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> JobOut:
    fields = payload.model_dump(exclude_unset=True, exclude={"expected_version"})
    try:
        job = await moderation.update_job(principal, job_id, fields, expected_version=payload.expected_version)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return JobOut(**job)


@router.patch("/{job_id}/status", response_model=JobOut)
async def set_job_status(
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


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(
    job_id: int,
    principal: Principal = Depends(get_principal),
    moderation: JobModeration = Depends(get_job_moderation),
) -> None:
    try:
        await moderation.delete_job(principal, job_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
