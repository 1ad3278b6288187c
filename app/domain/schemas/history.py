from datetime import datetime
from decimal import Decimal

from app.domain.models import HistoryType, RequestStatus
from app.domain.schemas.common import ResponseModel


class HistoryEntrySchema(ResponseModel):
    id: str
    user_id: str
    amount: Decimal
    type: HistoryType
    status: RequestStatus
    txn_req_id: str
    created_at: datetime
    updated_at: datetime
