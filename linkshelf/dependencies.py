from fastapi import Header, Query

from linkshelf.config import settings
from linkshelf.database import async_session
from linkshelf.errors import UnauthorizedError
from linkshelf.services.categorizer import Categorizer, EmptyCategorizer
from linkshelf.services.link_preview import EmptyLinkPreviewer, LinkPreviewer
from linkshelf.services.summarizer import EmptySummarizer, Summarizer
from linkshelf.unit_of_work import UnitOfWork


class PaginationParams:
    """
    Reusable FastAPI dependency that parses pagination / sorting query
    parameters for the content list.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    sort_by:
        Content column to sort by; the service falls back to
        ``created_at`` for anything it does not recognise.
    sort_order:
        ``"asc"`` or ``"desc"``.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
        sort_by: str = Query("created_at", description="Column name to sort results by."),
        sort_order: str = Query(
            "desc",
            pattern="^(asc|desc)$",
            description="Sort direction: 'asc' or 'desc'.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order


def get_current_user_id(
    x_user_id: int | None = Header(
        None,
        description="Id of the authenticated user, set by the auth gateway.",
    ),
) -> int:
    """
    Identity of the caller.

    Bearer tokens are verified by the auth gateway in front of this
    service, which forwards the resulting user id in ``X-User-Id``.
    """
    if x_user_id is None:
        raise UnauthorizedError()
    return x_user_id


def get_uow() -> UnitOfWork:
    """A fresh unit of work per request."""
    return UnitOfWork(async_session)


_link_previewer = EmptyLinkPreviewer()


def get_link_previewer() -> LinkPreviewer:
    return _link_previewer


_summarizer = EmptySummarizer()


def get_summarizer() -> Summarizer:
    return _summarizer


_categorizer = EmptyCategorizer()


def get_categorizer() -> Categorizer:
    return _categorizer
