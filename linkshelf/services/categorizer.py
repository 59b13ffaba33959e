"""
Link categorizer collaborator.

Given a link and the names of the user's categories, a ``Categorizer``
suggests the one that fits best, or None.
"""
from typing import Protocol


class Categorizer(Protocol):
    async def categorize(self, link: str, category_names: list[str]) -> str | None: ...


class EmptyCategorizer:
    """Categorizer used when no classification service is configured."""

    async def categorize(self, link: str, category_names: list[str]) -> str | None:
        return None
