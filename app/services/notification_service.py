"""
NOTIFICATION SERVICE

Best-effort notification sink. Writes inbox rows in their own short
transaction and, for admin broadcasts, pushes to Telegram.
Always called after the business transaction has committed; never raises.
Telegram pushes run as background tasks so callers never wait on the Bot API.
"""

import asyncio
import logging
from typing import Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import settings
from app.domain.models import Notification, NotificationAudience, Page
from app.infrastructure.db.repositories.notification_repository import NotificationRepository
from app.utils.notifications import format_message, send_telegram_message

logger = logging.getLogger(__name__)

# In-flight Telegram pushes, held until their done-callback runs
_pending_pushes: Set[asyncio.Task] = set()


def _push_done(task: asyncio.Task) -> None:
    _pending_pushes.discard(task)
    if task.cancelled():
        logger.warning("Telegram push cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Telegram push failed", exc_info=exc)


def schedule_telegram_push(title: Optional[str], message: str) -> asyncio.Task:
    task = asyncio.create_task(send_telegram_message(format_message(title, message)))
    _pending_pushes.add(task)
    task.add_done_callback(_push_done)
    return task


async def drain_pending_pushes(timeout: float = 20.0) -> None:
    """Wait for in-flight Telegram pushes (shutdown)"""
    if not _pending_pushes:
        return
    _, pending = await asyncio.wait(set(_pending_pushes), timeout=timeout)
    for task in pending:
        task.cancel()


class NotificationService:

    def __init__(self, session_factory: async_sessionmaker, push_admins_to_telegram: bool = True):
        self.session_factory = session_factory
        self.push_admins_to_telegram = push_admins_to_telegram

    async def notify(self, user_id: str, message: str, title: Optional[str] = None) -> bool:
        """Store a user-facing notification. Returns False if it could not be stored."""
        return await self._store(NotificationAudience.USER, message, title, user_id=user_id)

    async def notify_admins(self, message: str, title: Optional[str] = None) -> bool:
        stored = await self._store(NotificationAudience.ADMIN, message, title)
        if self.push_admins_to_telegram and settings.TELEGRAM_ENABLED:
            schedule_telegram_push(title, message)
        return stored

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Page[Notification]:
        async with self.session_factory() as session:
            return await NotificationRepository(session).list(
                NotificationAudience.USER,
                user_id=user_id,
                unread_only=unread_only,
                page=page,
                limit=limit,
            )

    async def list_for_admins(self, unread_only: bool = False, page: int = 1, limit: int = 20) -> Page[Notification]:
        async with self.session_factory() as session:
            return await NotificationRepository(session).list(
                NotificationAudience.ADMIN,
                unread_only=unread_only,
                page=page,
                limit=limit,
            )

    async def mark_read(self, notification_id: int, user_id: Optional[str] = None) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                return await NotificationRepository(session).mark_read(notification_id, user_id=user_id)

    async def _store(
        self,
        audience: NotificationAudience,
        message: str,
        title: Optional[str],
        user_id: Optional[str] = None,
    ) -> bool:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await NotificationRepository(session).create(
                        audience, message, user_id=user_id, title=title
                    )
            return True
        except SQLAlchemyError:
            logger.exception(
                "Failed to store %s notification%s",
                audience.value,
                f" for user {user_id}" if user_id else "",
            )
            return False
