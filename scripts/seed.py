"""Seed the database with demo users, category trees and saved links.

Goes through the service layer (one unit of work per operation) so the
seeded data obeys the same depth, cap and uniqueness rules as API traffic.
"""
import argparse
import asyncio
import random
import time
from datetime import date, timedelta

from linkshelf.database import Base, async_session, engine
from linkshelf.errors import ConflictError
from linkshelf.schemas import CategoryCreate, ContentCreate, UserCreate
from linkshelf.services import category_service, content_service, user_service
from linkshelf.services.link_preview import EmptyLinkPreviewer
from linkshelf.unit_of_work import UnitOfWork

TREES = {
    "Shopping": {"Sale": ["Flash", "Clearance"], "Wishlist": []},
    "Dev": {"Python": ["asyncio", "SQLAlchemy"], "Databases": ["PostgreSQL"]},
    "Reading": {"Essays": [], "Papers": ["ML"]},
}

SITES = ["example.com", "news.example.org", "blog.example.net", "docs.example.io"]


async def _add_category(user_id: int, name: str, parent_id: int | None) -> int:
    async with UnitOfWork(async_session) as db:
        category = await category_service.add_category(
            db, user_id, CategoryCreate(name=name, parent_id=parent_id)
        )
    return category["id"]


async def seed(small: bool = False) -> None:
    num_users = 3 if small else 20
    links_per_user = 10 if small else 200
    previewer = EmptyLinkPreviewer()

    print(f"Seeding: {num_users} users, ~{links_per_user} links each")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    total_links = 0
    for i in range(num_users):
        async with UnitOfWork(async_session) as db:
            user = await user_service.create_user(
                db, UserCreate(email=f"user_{i:04d}@example.com", name=f"User {i}")
            )

        leaves: list[tuple[str | None, int | None]] = [(None, None)]
        for root, children in TREES.items():
            root_id = await _add_category(user["id"], root, None)
            leaves.append((root, None))
            for child, grandchildren in children.items():
                child_id = await _add_category(user["id"], child, root_id)
                leaves.append((child, root_id))
                for grandchild in grandchildren:
                    await _add_category(user["id"], grandchild, child_id)
                    leaves.append((grandchild, child_id))

        for n in range(links_per_user):
            category_name, parent_id = random.choice(leaves)
            deadline = date.today() + timedelta(days=random.randint(-30, 30)) if n % 4 == 0 else None
            data = ContentCreate(
                link=f"https://{random.choice(SITES)}/post/{i}-{n}",
                comment=f"Saved link {n}",
                deadline=deadline,
                favorite=random.random() < 0.2,
                category_name=category_name,
                parent_id=parent_id,
            )
            try:
                async with UnitOfWork(async_session) as db:
                    await content_service.add_content(db, user["id"], data, previewer)
                total_links += 1
            except ConflictError:
                pass

        print(f"  User {i}: categories and links created")

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Links: {total_links}")


def main():
    parser = argparse.ArgumentParser(description="Seed the linkshelf database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
