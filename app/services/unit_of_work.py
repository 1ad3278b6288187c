"""
Unit of work helpers

One database transaction per business decision. Storage failures inside
the unit roll everything back and surface as InternalError, as does any
other unexpected failure. LedgerErrors raised by the work pass through.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.errors import ConcurrentUpdateError, InternalError, LedgerError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def unit_of_work(session_factory: async_sessionmaker) -> AsyncIterator[AsyncSession]:
    """Open a session and a transaction; commit on success, roll back on any error"""
    async with session_factory() as session:
        try:
            async with session.begin():
                yield session
        except LedgerError:
            raise
        except SQLAlchemyError as exc:
            raise InternalError(f"Storage failure: {exc.__class__.__name__}") from exc
        except Exception as exc:
            raise InternalError(f"Transaction failed: {exc.__class__.__name__}: {exc}") from exc


async def run_with_retry(
    session_factory: async_sessionmaker,
    work: Callable[[AsyncSession], Awaitable[T]],
    max_retries: int,
    label: str,
) -> T:
    """
    Run `work` inside a fresh unit of work, retrying the whole unit when an
    optimistic version check is lost.

    Raises:
        ConcurrentUpdateError: still losing after max_retries attempts
    """
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        try:
            async with unit_of_work(session_factory) as session:
                return await work(session)
        except ConcurrentUpdateError:
            if attempt >= attempts:
                logger.error("%s: giving up after %d concurrent-update conflicts", label, attempt)
                raise
            logger.warning("%s: concurrent update detected, retrying (attempt %d/%d)", label, attempt, attempts)
    raise InternalError(f"{label}: retry loop exited unexpectedly")
