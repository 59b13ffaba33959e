"""
Category resolution: find-or-create a category in a user's tree.

Design notes
------------
- The owner's ``categories`` collection must already be loaded (see
  ``user_service.load_user_aggregate``).  It is the fast path: a match there
  returns without touching the database.
- The storage layer is the source of truth for uniqueness.  The insert runs
  inside a SAVEPOINT; if a concurrent transaction created the same
  ``(slug, parent_id)`` first, the unique constraint rejects ours, the
  savepoint is rolled back and the winner's row is returned instead.
- Every step before the insert is read-only, so a failed resolution leaves
  nothing behind in the caller's transaction.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkshelf.config import settings
from linkshelf.errors import ConflictError, NotFoundError
from linkshelf.models import Category, User
from linkshelf.slug import generate_slug

logger = logging.getLogger(__name__)


def category_to_dict(category: Category | None) -> dict | None:
    if category is None:
        return None
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "parent_id": category.parent_id,
    }


def find_loaded_category(owner: User, slug: str, parent_id: int | None) -> Category | None:
    """Return the owner's category with *slug* under *parent_id*, if loaded."""
    for category in owner.categories:
        if category.slug == slug and category.parent_id == parent_id:
            return category
    return None


async def get_owned_category(db: AsyncSession, owner: User, category_id: int) -> Category | None:
    category = await db.get(Category, category_id)
    if category is None or category.user_id != owner.id:
        return None
    return category


async def check_depth(db: AsyncSession, parent: Category) -> None:
    """
    Raise ConflictError if a child of *parent* would sit deeper than
    ``CATEGORY_MAX_DEPTH`` levels.

    Walks at most ``CATEGORY_MAX_DEPTH - 2`` hops up from *parent*; the
    ancestor reached at the end must be a root.
    """
    max_depth = settings.CATEGORY_MAX_DEPTH
    if max_depth < 2:
        raise ConflictError(f"Category depth must not exceed {max_depth}")

    current = parent
    for _ in range(max_depth - 2):
        if current.parent_id is None:
            return
        ancestor = await db.get(Category, current.parent_id)
        if ancestor is None:
            return
        current = ancestor
    if current.parent_id is not None:
        raise ConflictError(f"Category depth must not exceed {max_depth}")


async def _fetch_existing(
    db: AsyncSession, owner: User, slug: str, parent_id: int | None
) -> Category | None:
    q = select(Category).where(Category.user_id == owner.id, Category.slug == slug)
    if parent_id is None:
        q = q.where(Category.parent_id.is_(None))
    else:
        q = q.where(Category.parent_id == parent_id)
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def _resolve_category(
    db: AsyncSession,
    name: str,
    parent_id: int | None,
    owner: User,
) -> tuple[Category, bool]:
    """
    Return *owner*'s category named *name* under *parent_id* and whether
    this call inserted it.

    Raises NotFoundError when *parent_id* does not name one of the owner's
    categories and ConflictError when the new category would break the
    depth limit.  The top-level category cap is not checked here.
    """
    slug = generate_slug(name)

    if parent_id is not None:
        parent = await get_owned_category(db, owner, parent_id)
        if parent is None:
            raise NotFoundError("Parent category not found")
        await check_depth(db, parent)

    category = find_loaded_category(owner, slug, parent_id)
    if category is not None:
        return category, False

    category = Category(name=name, slug=slug, parent_id=parent_id, user_id=owner.id)
    try:
        async with db.begin_nested():
            db.add(category)
            await db.flush()
    except IntegrityError:
        existing = await _fetch_existing(db, owner, slug, parent_id)
        if existing is None:
            raise
        logger.info(
            "Category %r (parent=%s) created concurrently for user %s; reusing id=%s",
            slug, parent_id, owner.id, existing.id,
        )
        if existing not in owner.categories:
            owner.categories.append(existing)
        return existing, False

    if category not in owner.categories:
        owner.categories.append(category)
    return category, True


async def get_or_create_category(
    db: AsyncSession,
    name: str,
    parent_id: int | None,
    owner: User,
) -> Category:
    """
    Return *owner*'s category named *name* under *parent_id*, creating it
    when it does not exist yet.  Used where a category is resolved
    implicitly, e.g. while saving a content.
    """
    category, _ = await _resolve_category(db, name, parent_id, owner)
    return category


async def create_category(
    db: AsyncSession,
    name: str,
    parent_id: int | None,
    owner: User,
) -> Category:
    """
    Insert a new category for *owner*.

    Raises ConflictError when the category already exists, including when
    a concurrent transaction created it after *owner* was loaded.
    """
    category, created = await _resolve_category(db, name, parent_id, owner)
    if not created:
        raise ConflictError("Category already exists")
    return category
