from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linkshelf.cache import cache
from linkshelf.database import get_db
from linkshelf.dependencies import get_categorizer, get_current_user_id, get_uow
from linkshelf.schemas import (
    AutoCategorizeResponse,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    FrequentCategoryResponse,
)
from linkshelf.services import category_service
from linkshelf.services.categorizer import Categorizer
from linkshelf.unit_of_work import UnitOfWork

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


@router.post("", status_code=201, response_model=CategoryResponse)
async def add_category(
    data: CategoryCreate,
    user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow as db:
        category = await category_service.add_category(db, user_id, data)
    await cache.invalidate_user(user_id)
    return category


@router.patch("", response_model=CategoryResponse)
async def update_category(
    data: CategoryUpdate,
    user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow as db:
        category = await category_service.update_category(db, user_id, data)
    await cache.invalidate_user(user_id)
    return category


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    delete_content_flag: bool = Query(
        ..., description="Delete the category's contents instead of detaching them."
    ),
    user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow as db:
        await category_service.delete_category(db, user_id, category_id, delete_content_flag)
    await cache.invalidate_user(user_id)


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.get_categories(db, user_id)


@router.get("/frequent", response_model=list[FrequentCategoryResponse])
async def list_frequent_categories(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.get_frequent_categories(db, user_id)


@router.get("/auto-categorize", response_model=AutoCategorizeResponse)
async def auto_categorize(
    link: str = Query(..., min_length=1, max_length=2048, description="Link to categorize."),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    categorizer: Categorizer = Depends(get_categorizer),
):
    return await category_service.auto_categorize(db, user_id, link, categorizer)
