from fastapi import APIRouter, Depends

from hirelane.api.deps import get_category_catalog
from hirelane.api.errors import to_http_exception
from hirelane.schemas.categories import CategoryOut
from hirelane.services.categories import CategoryCatalog
from hirelane.services.repository import RepositoryError

router = APIRouter()


@router.get("", response_model=list[CategoryOut])
async def list_categories(categories: CategoryCatalog = Depends(get_category_catalog)) -> list[CategoryOut]:
    try:
        rows = await categories.list_categories()
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return [CategoryOut(**row) for row in rows]


@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(
    category_id: int,
    categories: CategoryCatalog = Depends(get_category_catalog),
) -> CategoryOut:
    try:
        category = await categories.get_category(category_id)
    except RepositoryError as exc:
        raise to_http_exception(exc) from exc
    return CategoryOut(**category)
