from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linkshelf.cache import cache
from linkshelf.database import get_db
from linkshelf.dependencies import (
    PaginationParams,
    get_current_user_id,
    get_link_previewer,
    get_summarizer,
    get_uow,
)
from linkshelf.schemas import (
    ContentBatchCreate,
    ContentCreate,
    ContentResponse,
    ContentUpdate,
    PaginatedResponse,
    ReminderCountResponse,
    SummaryResponse,
)
from linkshelf.services import content_service
from linkshelf.services.link_preview import LinkPreviewer
from linkshelf.services.summarizer import Summarizer
from linkshelf.unit_of_work import UnitOfWork

router = APIRouter(prefix="/api/v1/contents", tags=["contents"])


@router.post("", status_code=201, response_model=ContentResponse)
async def add_content(
    data: ContentCreate,
    user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
    previewer: LinkPreviewer = Depends(get_link_previewer),
):
    async with uow as db:
        content = await content_service.add_content(db, user_id, data, previewer)
    await cache.invalidate_user(user_id)
    return content


@router.post("/multiple", status_code=201, response_model=list[ContentResponse])
async def add_multiple_contents(
    data: ContentBatchCreate,
    user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
    previewer: LinkPreviewer = Depends(get_link_previewer),
):
    async with uow as db:
        contents = await content_service.add_multiple_contents(db, user_id, data, previewer)
    await cache.invalidate_user(user_id)
    return contents


@router.patch("", response_model=ContentResponse)
async def update_content(
    data: ContentUpdate,
    user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow as db:
        content = await content_service.update_content(db, user_id, data)
    await cache.invalidate_user(user_id)
    return content


@router.patch("/{content_id}/favorite", response_model=ContentResponse)
async def toggle_favorite(
    content_id: int,
    user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow as db:
        content = await content_service.toggle_favorite(db, user_id, content_id)
    await cache.invalidate_user(user_id)
    return content


@router.delete("/{content_id}", status_code=204)
async def delete_content(
    content_id: int,
    user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow as db:
        await content_service.delete_content(db, user_id, content_id)
    await cache.invalidate_user(user_id)


@router.get("", response_model=PaginatedResponse)
async def list_contents(
    category_id: int | None = Query(None, description="Only contents of this category."),
    pagination: PaginationParams = Depends(),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await content_service.get_contents(
        db,
        user_id,
        category_id,
        pagination.page,
        pagination.page_size,
        pagination.sort_by,
        pagination.sort_order,
    )


@router.get("/favorite", response_model=list[ContentResponse])
async def list_favorites(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await content_service.get_favorites(db, user_id)


@router.get("/reminder-count", response_model=ReminderCountResponse)
async def reminder_count(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"count": await content_service.get_reminder_count(db, user_id)}


@router.get("/{content_id}/summarize", response_model=SummaryResponse)
async def summarize_content(
    content_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    summarizer: Summarizer = Depends(get_summarizer),
):
    return await content_service.summarize_content(db, user_id, content_id, summarizer)
