from __future__ import annotations

from types import TracebackType

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.domain.errors import PersistenceError

logger = structlog.get_logger()


class UnitOfWork:
    """Transaction boundary around an ``AsyncSession``.

    Everything staged inside the ``async with`` block is committed together on
    a clean exit and rolled back on any exception, so callers never observe a
    half-applied state change. Store failures surface as ``PersistenceError``.
    """

    def __init__(self, session: AsyncSession, *, operation: str = "unit_of_work") -> None:
        self.session = session
        self.operation = operation

    async def __aenter__(self) -> UnitOfWork:
        logger.debug("uow_enter", operation=self.operation)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc is not None:
            await self.rollback()
            if isinstance(exc, SQLAlchemyError):
                await logger.aerror(
                    "uow_store_failure", operation=self.operation, error=str(exc)
                )
                raise PersistenceError(f"Could not persist {self.operation}") from exc
            return

        await self.commit()
        logger.debug("uow_exit", operation=self.operation)

    async def flush(self) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            await self.rollback()
            raise PersistenceError(f"Could not persist {self.operation}") from exc

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.rollback()
            await logger.aerror("uow_commit_failed", operation=self.operation, error=str(exc))
            raise PersistenceError(f"Could not persist {self.operation}") from exc

    async def rollback(self) -> None:
        await self.session.rollback()
        logger.debug("uow_rollback", operation=self.operation)
