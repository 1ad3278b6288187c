from datetime import datetime
from decimal import Decimal
from pydantic import Field
from typing import Optional

from app.domain.models import Decision, PlanName, RequestStatus, RequestType
from app.domain.schemas.common import ResponseModel, StrictModel

AMOUNT = dict(gt=0, max_digits=18, decimal_places=6)


class TransactionSubmitRequest(StrictModel):
    amount: Decimal = Field(**AMOUNT)
    type: RequestType
    plan: PlanName
    wallet_address: str = Field(min_length=1, max_length=128)
    wallet_tx_id: Optional[str] = Field(default=None, max_length=256)
    transaction_image: Optional[str] = None


class DecisionRequest(StrictModel):
    decision: Decision
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)


class TransactionRequestSchema(ResponseModel):
    id: str
    user_id: str
    amount: Decimal
    type: RequestType
    plan: PlanName
    wallet_address: str
    wallet_tx_id: Optional[str]
    transaction_image: Optional[str]
    status: RequestStatus
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime
    decided_at: Optional[datetime] = None
