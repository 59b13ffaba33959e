"""
Transaction boundary for mutating endpoints.

A ``UnitOfWork`` owns exactly one ``AsyncSession`` and therefore one
database transaction.  The session it yields is the handle every service
function receives as its first argument; nothing reaches for a global or
request-scoped session behind the caller's back.

Usage in a router::

    async with uow as db:
        return await content_service.add_content(db, user_id, data, previewer)

Normal exit commits.  Any exception, including one raised by the commit
itself, rolls the transaction back and is re-raised as a ``ServiceError``
(see ``linkshelf.errors.to_service_error``).
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linkshelf.errors import ServiceError, to_service_error

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> AsyncSession:
        if self.session is not None:
            raise RuntimeError("UnitOfWork is not re-entrant")
        self.session = self._session_factory()
        return self.session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        session = self.session
        try:
            if exc is None:
                try:
                    await session.commit()
                except Exception as commit_exc:
                    await session.rollback()
                    logger.warning("Commit failed, transaction rolled back: %s", commit_exc)
                    raise to_service_error(commit_exc) from commit_exc
                return False

            await session.rollback()
            if not isinstance(exc, Exception):
                # Cancellation and interpreter exit propagate untouched.
                return False
            if isinstance(exc, ServiceError):
                logger.info("Transaction rolled back (%s): %s", exc.kind, exc.message)
                return False
            logger.exception("Transaction rolled back on unexpected error", exc_info=exc)
            raise to_service_error(exc) from exc
        finally:
            await session.close()
            self.session = None
