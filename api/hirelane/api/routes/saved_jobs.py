from fastapi import APIRouter, Depends, status

from hirelane.api.deps import get_saved_jobs
from hirelane.api.errors import to_http_exception
from hirelane.core.auth import Principal
from hirelane.core.security import get_principal
from hirelane.schemas.saved_jobs import SavedJobOut, SaveJobRequest
from hirelane.services.repository import RepositoryError
from hirelane.services.saved_jobs import SavedJobRegistry

router = APIRouter()


@router.get("", response_model=list[SavedJobOut])
async def list_saved_jobs(
    principal: Principal = Depends(get_principal),
    registry: SavedJobRegistry = Depends(get_saved_jobs),
) -> list[SavedJobOut]:
    try:
        rows = await registry.list_saved(principal)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return [SavedJobOut(**row) for row in rows]


@router.post("", response_model=SavedJobOut, status_code=status.HTTP_201_CREATED)
async def save_job(
    payload: SaveJobRequest,
    principal: Principal = Depends(get_principal),
    registry: SavedJobRegistry = Depends(get_saved_jobs),
) -> SavedJobOut:
    try:
        saved = await registry.save(principal, payload.job_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return SavedJobOut(**saved)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unsave_job(
    job_id: int,
    principal: Principal = Depends(get_principal),
    registry: SavedJobRegistry = Depends(get_saved_jobs),
) -> None:
    try:
        await registry.unsave(principal, job_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
