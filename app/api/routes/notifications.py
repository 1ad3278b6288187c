"""
Notification Inbox API Routes
"""

from fastapi import APIRouter, Depends, Query

from app.api.deps import current_user_id, get_services, require_admin
from app.domain.errors import NotFoundError
from app.domain.schemas.common import MessageSchema, PageSchema, page_response
from app.domain.schemas.notifications import NotificationSchema
from app.services.container import LedgerServices

router = APIRouter()


@router.get("/me", response_model=PageSchema[NotificationSchema])
async def list_my_notifications(
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    result = await services.notifications.list_for_user(
        user_id, unread_only=unread_only, page=page, limit=limit
    )
    return page_response(result, NotificationSchema)


@router.put("/me/{notification_id}/read", response_model=MessageSchema)
async def mark_read(
    notification_id: int,
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    if not await services.notifications.mark_read(notification_id, user_id=user_id):
        raise NotFoundError(f"Notification {notification_id} not found")
    return MessageSchema(message="Notification marked as read")


@router.get("/admin", response_model=PageSchema[NotificationSchema])
async def list_admin_notifications(
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    result = await services.notifications.list_for_admins(unread_only=unread_only, page=page, limit=limit)
    return page_response(result, NotificationSchema)
