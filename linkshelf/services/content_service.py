"""
Content service: saved links and their category membership.

Design notes
------------
- Every mutating function starts from ``load_user_aggregate`` and checks
  invariants against the loaded collections before writing.  The unique
  constraints on ``contents`` back those checks up: a duplicate that slips
  past them under concurrency fails at flush/commit and the unit of work
  reports it as a Conflict.
- Functions flush but never commit; the transaction boundary is owned by
  ``linkshelf.unit_of_work.UnitOfWork`` in the router layer.
- Read functions (``get_contents`` and friends) run on the plain
  ``get_db`` session and go through the Redis cache.
"""
import asyncio
import logging
import math
from datetime import date

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from linkshelf.cache import cache
from linkshelf.config import settings
from linkshelf.errors import BadRequestError, ConflictError, NotFoundError
from linkshelf.models import Content, User
from linkshelf.schemas import ContentBatchCreate, ContentCreate, ContentUpdate, PaginatedResponse
from linkshelf.services.category_resolver import (
    category_to_dict,
    get_or_create_category,
    get_owned_category,
)
from linkshelf.services.link_preview import LinkPreview, LinkPreviewer
from linkshelf.services.summarizer import Summarizer
from linkshelf.services.user_service import load_user_aggregate

logger = logging.getLogger(__name__)

DUPLICATE_LINK_MESSAGE = "Content with that link already exists in same category."
PARENT_WITHOUT_CATEGORY_MESSAGE = "parent_id requires category_name."

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset({"created_at", "title", "deadline"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve_sort_column(sort_by: str):
    if sort_by in _SORTABLE_COLUMNS:
        return getattr(Content, sort_by)
    return Content.created_at


def content_to_dict(content: Content) -> dict:
    """Serialise a Content ORM instance (category must be loaded or set)."""
    return {
        "id": content.id,
        "link": content.link,
        "title": content.title,
        "description": content.description,
        "cover_image": content.cover_image,
        "comment": content.comment,
        "deadline": content.deadline.isoformat() if content.deadline else None,
        "favorite": content.favorite,
        "category": category_to_dict(content.category),
        "created_at": content.created_at.isoformat() if content.created_at else None,
    }


def _find_content(user: User, content_id: int) -> Content:
    for content in user.contents:
        if content.id == content_id:
            return content
    raise NotFoundError("Content not found.")


def _link_exists(
    user: User, link: str, category_id: int | None, exclude_id: int | None = None
) -> bool:
    return any(
        c.link == link and c.category_id == category_id and c.id != exclude_id
        for c in user.contents
    )


async def _fetch_preview(previewer: LinkPreviewer, link: str) -> LinkPreview:
    """Best-effort preview: a failing collaborator yields an empty preview."""
    try:
        return await previewer.fetch(link)
    except Exception as exc:
        logger.warning("Link preview failed for %s: %s", link, exc)
        return LinkPreview()


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def add_content(
    db: AsyncSession,
    user_id: int,
    data: ContentCreate,
    previewer: LinkPreviewer,
) -> dict:
    """
    Save *data.link* for the user, optionally inside a category that is
    created on the fly.

    Raises ConflictError when the same link is already saved in the same
    category (no category counts as one), NotFoundError for an unknown
    user or parent category.  A *parent_id* without a *category_name*
    is a BadRequestError.
    """
    if data.parent_id is not None and not data.category_name:
        raise BadRequestError(PARENT_WITHOUT_CATEGORY_MESSAGE)

    user = await load_user_aggregate(db, user_id, contents=True, categories=True)

    category = None
    if data.category_name:
        category = await get_or_create_category(db, data.category_name, data.parent_id, user)
    category_id = category.id if category is not None else None

    if _link_exists(user, data.link, category_id):
        raise ConflictError(DUPLICATE_LINK_MESSAGE)

    preview = await _fetch_preview(previewer, data.link)
    content = Content(
        link=data.link,
        title=data.title or preview.title or data.link,
        description=preview.description,
        cover_image=preview.cover_image,
        comment=data.comment,
        deadline=data.deadline,
        favorite=data.favorite,
        category=category,
    )
    user.contents.append(content)
    await db.flush()

    logger.info("User %s saved content id=%s (category=%s)", user_id, content.id, category_id)
    return content_to_dict(content)


async def add_multiple_contents(
    db: AsyncSession,
    user_id: int,
    data: ContentBatchCreate,
    previewer: LinkPreviewer,
) -> list[dict]:
    """
    Save several uncategorised links at once.

    The batch is all-or-nothing: the first link that is already saved
    without a category, or that appears twice in *data.links*, fails the
    whole batch with ConflictError before anything is written.
    """
    user = await load_user_aggregate(db, user_id, contents=True)

    seen: set[str] = set()
    for link in data.links:
        if link in seen or _link_exists(user, link, None):
            raise ConflictError(DUPLICATE_LINK_MESSAGE)
        seen.add(link)

    previews = await asyncio.gather(*(_fetch_preview(previewer, link) for link in data.links))

    created: list[Content] = []
    for link, preview in zip(data.links, previews):
        content = Content(
            link=link,
            title=preview.title or link,
            description=preview.description,
            cover_image=preview.cover_image,
            favorite=False,
            category=None,
        )
        user.contents.append(content)
        created.append(content)
    await db.flush()

    logger.info("User %s saved %d contents in one batch", user_id, len(created))
    return [content_to_dict(c) for c in created]


async def update_content(db: AsyncSession, user_id: int, data: ContentUpdate) -> dict:
    """
    Partially update one of the user's contents.

    Only fields explicitly set in the payload are modified
    (``model_dump(exclude_unset=True)``).  When ``category_name`` is given
    the target category is resolved (and created if needed) first; the
    update is rejected with ConflictError when another content of the user
    already holds the resulting link in the resulting category.
    """
    user = await load_user_aggregate(db, user_id, contents=True, categories=True)
    content = _find_content(user, data.id)

    update_data = data.model_dump(exclude_unset=True, exclude={"id"})
    category_name = update_data.pop("category_name", None)
    parent_id = update_data.pop("parent_id", None)
    if parent_id is not None and not category_name:
        raise BadRequestError(PARENT_WITHOUT_CATEGORY_MESSAGE)

    category = content.category
    if category_name:
        category = await get_or_create_category(db, category_name, parent_id, user)

    target_link = update_data.get("link") or content.link
    target_category_id = category.id if category is not None else None
    if _link_exists(user, target_link, target_category_id, exclude_id=content.id):
        raise ConflictError(DUPLICATE_LINK_MESSAGE)

    for field, value in update_data.items():
        if field in ("link", "title", "favorite") and value is None:
            continue  # not nullable
        setattr(content, field, value)
    content.category = category

    await db.flush()
    return content_to_dict(content)


async def toggle_favorite(db: AsyncSession, user_id: int, content_id: int) -> dict:
    """Flip the favorite flag of one of the user's contents."""
    user = await load_user_aggregate(db, user_id, contents=True)
    content = _find_content(user, content_id)
    content.favorite = not content.favorite
    await db.flush()
    return content_to_dict(content)


async def delete_content(db: AsyncSession, user_id: int, content_id: int) -> None:
    """
    Delete one of the user's contents.

    The content's category is kept even if it becomes empty; categories
    are only removed through ``category_service.delete_category``.
    """
    user = await load_user_aggregate(db, user_id, contents=True)
    content = _find_content(user, content_id)
    user.contents.remove(content)
    await db.flush()
    logger.info("User %s deleted content id=%s", user_id, content_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_contents(
    db: AsyncSession,
    user_id: int,
    category_id: int | None = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    """
    Return a page of the user's contents, optionally restricted to one
    category (exact match, subcategories are not included).
    """
    cache_key = f"user:{user_id}:contents:{category_id}:{page}:{page_size}:{sort_by}:{sort_order}"
    cached = await cache.get(cache_key)
    if cached:
        return PaginatedResponse(**cached)

    user = await load_user_aggregate(db, user_id)
    conditions = [Content.user_id == user.id]
    if category_id is not None:
        if await get_owned_category(db, user, category_id) is None:
            raise NotFoundError("Category not found.")
        conditions.append(Content.category_id == category_id)

    count_q = select(func.count()).select_from(Content).where(*conditions)
    total: int = (await db.execute(count_q)).scalar_one()

    sort_col = _resolve_sort_column(sort_by)
    order_expr = desc(sort_col) if sort_order == "desc" else asc(sort_col)
    q = (
        select(Content)
        .where(*conditions)
        .options(selectinload(Content.category))
        .order_by(order_expr, Content.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    contents = (await db.execute(q)).scalars().all()

    response = PaginatedResponse(
        items=[content_to_dict(c) for c in contents],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )
    await cache.set(cache_key, response.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return response


async def get_favorites(db: AsyncSession, user_id: int) -> list[dict]:
    """Return the user's favorite contents, newest first."""
    cache_key = f"user:{user_id}:favorites"
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    user = await load_user_aggregate(db, user_id)
    q = (
        select(Content)
        .where(Content.user_id == user.id, Content.favorite.is_(True))
        .options(selectinload(Content.category))
        .order_by(Content.created_at.desc(), Content.id.desc())
    )
    items = [content_to_dict(c) for c in (await db.execute(q)).scalars().all()]
    await cache.set(cache_key, items, ttl=settings.CACHE_TTL_LIST)
    return items


async def get_reminder_count(db: AsyncSession, user_id: int, today: date | None = None) -> int:
    """Count the user's contents whose deadline is *today* or later."""
    user = await load_user_aggregate(db, user_id)
    today = today or date.today()
    q = (
        select(func.count())
        .select_from(Content)
        .where(Content.user_id == user.id, Content.deadline >= today)
    )
    return (await db.execute(q)).scalar_one()


async def summarize_content(
    db: AsyncSession, user_id: int, content_id: int, summarizer: Summarizer
) -> dict:
    """
    Summarise the document behind one of the user's contents.

    Raises NotFoundError for a content the user does not own and
    BadRequestError when the summarizer rejects the document.
    """
    user = await load_user_aggregate(db, user_id, contents=True)
    content = _find_content(user, content_id)
    try:
        summary = await summarizer.summarize(content.link, content.title)
    except Exception as exc:
        logger.warning("Summarizer failed for content id=%s: %s", content_id, exc)
        raise BadRequestError("Could not summarize content.") from exc
    return {"content_id": content.id, "summary": summary}
