"""
Category service: explicit category add / rename / delete and the
category read endpoints.

Rename and delete cascade over the user's contents: both load the full
user aggregate (contents with their categories, and the category list) so
every affected row is updated in the same transaction.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linkshelf.cache import cache
from linkshelf.config import settings
from linkshelf.errors import BadRequestError, ConflictError, NotFoundError
from linkshelf.models import Category, Content, User
from linkshelf.schemas import CategoryCreate, CategoryUpdate
from linkshelf.services.categorizer import Categorizer
from linkshelf.services.category_resolver import (
    category_to_dict,
    create_category,
    find_loaded_category,
)
from linkshelf.services.user_service import load_user_aggregate
from linkshelf.slug import generate_slug

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _count_top_level(db: AsyncSession, user_id: int) -> int:
    q = (
        select(func.count())
        .select_from(Category)
        .where(Category.user_id == user_id, Category.parent_id.is_(None))
    )
    return (await db.execute(q)).scalar_one()


def _subtree(user: User, root: Category) -> list[list[Category]]:
    """
    Return *root* and its descendants grouped by level, root level first.
    Only the owner's loaded categories are considered.
    """
    levels = [[root]]
    while True:
        parent_ids = {c.id for c in levels[-1]}
        children = [c for c in user.categories if c.parent_id in parent_ids]
        if not children:
            return levels
        levels.append(children)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def add_category(db: AsyncSession, user_id: int, data: CategoryCreate) -> dict:
    """
    Create a category for the user.

    Raises ConflictError when the category already exists under the same
    parent (also when a concurrent request created it first), or when a
    new top-level category would exceed ``CATEGORY_TOP_LEVEL_LIMIT``.
    """
    user = await load_user_aggregate(db, user_id, categories=True)

    slug = generate_slug(data.name)
    if find_loaded_category(user, slug, data.parent_id) is not None:
        raise ConflictError("Category already exists")

    if data.parent_id is None:
        limit = settings.CATEGORY_TOP_LEVEL_LIMIT
        if await _count_top_level(db, user.id) >= limit:
            raise ConflictError(f"Cannot create more than {limit} top-level categories")

    category = await create_category(db, data.name, data.parent_id, user)
    logger.info("User %s added category id=%s (%r)", user_id, category.id, category.slug)
    return category_to_dict(category)


async def update_category(db: AsyncSession, user_id: int, data: CategoryUpdate) -> dict:
    """
    Rename the user's category *data.original_name* (under *data.parent_id*)
    to *data.name*.

    A rename that keeps the slug only changes the display name.  Otherwise
    a category with the new name is created under the same parent, the
    old category's children and contents are moved onto it and the old
    category is deleted.

    The name conflict check covers siblings only: the same name elsewhere
    in the tree is a different category and does not block the rename.
    """
    user = await load_user_aggregate(db, user_id, contents=True, categories=True)

    original = find_loaded_category(user, generate_slug(data.original_name), data.parent_id)
    if original is None:
        raise NotFoundError("Category doesn't exist in current user.")

    new_slug = generate_slug(data.name)
    if new_slug == original.slug:
        original.name = data.name
        await db.flush()
        return category_to_dict(original)

    if find_loaded_category(user, new_slug, original.parent_id) is not None:
        raise ConflictError("Category with that name already exists in current user.")

    target = await create_category(db, data.name, original.parent_id, user)

    for child in user.categories:
        if child.parent_id == original.id:
            child.parent_id = target.id
    moved = 0
    for content in user.contents:
        if content.category_id == original.id:
            content.category = target
            moved += 1
    await db.flush()

    user.categories.remove(original)
    await db.flush()

    logger.info(
        "User %s renamed category id=%s to id=%s, moved %d contents",
        user_id, original.id, target.id, moved,
    )
    return category_to_dict(target)


async def delete_category(
    db: AsyncSession, user_id: int, category_id: int, delete_content: bool
) -> None:
    """
    Delete the user's category *category_id* together with its
    subcategories.

    Contents of every removed category are deleted when *delete_content*
    is true, otherwise they are kept without a category.
    """
    user = await load_user_aggregate(db, user_id, contents=True, categories=True)

    category = next((c for c in user.categories if c.id == category_id), None)
    if category is None:
        raise NotFoundError("Category not found.")

    levels = _subtree(user, category)
    removed_ids = {c.id for level in levels for c in level}

    affected = [c for c in user.contents if c.category_id in removed_ids]
    if not delete_content:
        links = [c.link for c in user.contents if c.category_id is None]
        links.extend(c.link for c in affected)
        if len(links) != len(set(links)):
            raise ConflictError(
                "Detaching the category's contents would duplicate links saved without a category."
            )

    for content in affected:
        if delete_content:
            user.contents.remove(content)
        else:
            content.category = None
    await db.flush()

    # Deepest level first so no row outlives its parent.
    for level in reversed(levels):
        for c in level:
            user.categories.remove(c)
        await db.flush()

    logger.info(
        "User %s deleted category id=%s (%d categories, %d contents %s)",
        user_id, category_id, len(removed_ids), len(affected),
        "deleted" if delete_content else "detached",
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_categories(db: AsyncSession, user_id: int) -> list[dict]:
    """Return the user's categories as a flat list ordered by id."""
    cache_key = f"user:{user_id}:categories"
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    user = await load_user_aggregate(db, user_id, categories=True)
    items = [category_to_dict(c) for c in user.categories]
    await cache.set(cache_key, items, ttl=settings.CACHE_TTL_LIST)
    return items


async def get_frequent_categories(db: AsyncSession, user_id: int, limit: int = 3) -> list[dict]:
    """
    Return up to *limit* categories holding the most contents, busiest
    first.  Empty categories are never returned.
    """
    user = await load_user_aggregate(db, user_id)
    content_count = func.count(Content.id).label("content_count")
    q = (
        select(Category, content_count)
        .join(Content, Content.category_id == Category.id)
        .where(Category.user_id == user.id)
        .group_by(Category.id)
        .order_by(content_count.desc(), Category.id)
        .limit(limit)
    )
    rows = (await db.execute(q)).all()
    return [
        {**category_to_dict(category), "content_count": count}
        for category, count in rows
    ]


async def auto_categorize(
    db: AsyncSession, user_id: int, link: str, categorizer: Categorizer
) -> dict:
    """
    Ask the categorizer which of the user's categories fits *link*.

    Suggestions that do not name one of the user's categories are
    discarded, so the result is either an existing category name or None.
    """
    user = await load_user_aggregate(db, user_id, categories=True)
    names = [c.name for c in user.categories]
    if not names:
        return {"category": None}

    try:
        suggestion = await categorizer.categorize(link, names)
    except Exception as exc:
        logger.warning("Categorizer failed for %s: %s", link, exc)
        raise BadRequestError("Could not categorize link.") from exc

    if suggestion is not None:
        slug = generate_slug(suggestion)
        match = next((c for c in user.categories if c.slug == slug), None)
        if match is not None:
            return {"category": match.name}
    return {"category": None}
