"""
Link preview collaborator.

Scraping Open Graph data is owned by a separate service; the core only
needs the three fields below.  ``LinkPreviewer`` is the seam the routers
inject (see ``linkshelf.dependencies.get_link_previewer``) and tests
override.
"""
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class LinkPreview:
    title: str | None = None
    description: str | None = None
    cover_image: str | None = None


class LinkPreviewer(Protocol):
    async def fetch(self, link: str) -> LinkPreview: ...


class EmptyLinkPreviewer:
    """Previewer used when no scraping service is configured."""

    async def fetch(self, link: str) -> LinkPreview:
        return LinkPreview()
