from datetime import datetime
from decimal import Decimal
from pydantic import Field
from typing import Optional

from app.domain.models import PlanName, RequestStatus
from app.domain.schemas.common import ResponseModel, StrictModel
from app.domain.schemas.transactions import AMOUNT


class InvestmentSubmitRequest(StrictModel):
    amount: Decimal = Field(**AMOUNT)
    plan: PlanName
    wallet_address: str = Field(min_length=1, max_length=128)
    note: Optional[str] = Field(default=None, max_length=1000)


class InvestmentRequestSchema(ResponseModel):
    id: str
    user_id: str
    amount: Decimal
    plan: PlanName
    wallet_address: str
    note: Optional[str]
    status: RequestStatus
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime
    decided_at: Optional[datetime] = None
