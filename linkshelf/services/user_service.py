"""
User service: the User aggregate and sign-up.

``load_user_aggregate`` is the entry point of every mutating service
function: it loads the user together with exactly the relations the
operation needs, so the in-memory collections reflect the transaction's
snapshot before any check is made against them.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from linkshelf.config import settings
from linkshelf.errors import NotFoundError
from linkshelf.models import Category, Content, User
from linkshelf.schemas import UserCreate
from linkshelf.slug import generate_slug


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ---------------------------------------------------------------------------
# Aggregate loading
# ---------------------------------------------------------------------------

async def load_user_aggregate(
    db: AsyncSession,
    user_id: int,
    *,
    contents: bool = False,
    categories: bool = False,
) -> User:
    """
    Return the User identified by *user_id* with the requested relations
    eagerly loaded.

    ``populate_existing`` makes the load authoritative even when the user
    is already in the session's identity map with collections from an
    earlier call.  Raises NotFoundError when the user does not exist.
    """
    options = []
    if contents:
        options.append(selectinload(User.contents).selectinload(Content.category))
    if categories:
        options.append(selectinload(User.categories))

    q = (
        select(User)
        .where(User.id == user_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_user(db: AsyncSession, user_id: int) -> dict | None:
    """Return the serialised user, or None when it does not exist."""
    user = await db.get(User, user_id)
    if user is None:
        return None
    return _user_to_dict(user)


async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Create a user together with the default top-level categories.

    Email uniqueness is enforced by the database; the unit of work turns
    the resulting IntegrityError into a Conflict.
    """
    user = User(email=data.email, name=data.name)
    seen: set[str] = set()
    for name in settings.DEFAULT_CATEGORIES:
        slug = generate_slug(name)
        if slug in seen:
            continue
        seen.add(slug)
        user.categories.append(Category(name=name, slug=slug))
    db.add(user)
    await db.flush()
    return _user_to_dict(user)
