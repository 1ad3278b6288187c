from datetime import datetime
from typing import Optional

from app.domain.models import NotificationAudience
from app.domain.schemas.common import ResponseModel


class NotificationSchema(ResponseModel):
    id: int
    audience: NotificationAudience
    user_id: Optional[str]
    title: Optional[str]
    message: str
    read: bool
    created_at: datetime
