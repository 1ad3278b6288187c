"""
Notification Repository
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import Notification, NotificationAudience, Page
from app.infrastructure.db.models import NotificationModel
from app.infrastructure.db.repositories.pagination import paginate
from app.utils.time import now_utc_naive


class NotificationRepository:
    """Repository for the user / admin inbox"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        audience: NotificationAudience,
        message: str,
        user_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Notification:
        model = NotificationModel(
            audience=audience.value,
            user_id=user_id,
            title=title,
            message=message,
            read=False,
            created_at=now_utc_naive(),
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def list(
        self,
        audience: NotificationAudience,
        user_id: Optional[str] = None,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Page[Notification]:
        stmt = select(NotificationModel).where(NotificationModel.audience == audience.value)
        if user_id:
            stmt = stmt.where(NotificationModel.user_id == user_id)
        if unread_only:
            stmt = stmt.where(NotificationModel.read.is_(False))
        stmt = stmt.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        return await paginate(self.session, stmt, page, limit, self._to_domain)

    async def mark_read(self, notification_id: int, user_id: Optional[str] = None) -> bool:
        stmt = update(NotificationModel).where(NotificationModel.id == notification_id)
        if user_id:
            stmt = stmt.where(NotificationModel.user_id == user_id)
        result = await self.session.execute(
            stmt.values(read=True).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _to_domain(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            audience=NotificationAudience(model.audience),
            user_id=model.user_id,
            title=model.title,
            message=model.message,
            read=bool(model.read),
            created_at=model.created_at,
        )
