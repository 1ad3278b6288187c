from datetime import datetime
from decimal import Decimal
from pydantic import Field
from typing import Optional

from app.domain.models import Decision, PlanName, RequestStatus
from app.domain.schemas.common import ResponseModel, StrictModel
from app.domain.schemas.transactions import AMOUNT


class ReferralCreateRequest(StrictModel):
    referrer_id: str = Field(min_length=1, max_length=36)
    referred_id: str = Field(min_length=1, max_length=36)


class ReferralSchema(ResponseModel):
    id: str
    referrer_id: str
    referred_id: str
    reward_expires_at: datetime
    reward_claimed: bool
    created_at: datetime


class RewardCreateRequest(StrictModel):
    referred_id: str = Field(min_length=1, max_length=36)
    transaction_request_id: str = Field(min_length=1, max_length=36)
    reward_amount: Decimal = Field(**AMOUNT)


class RewardDecisionRequest(StrictModel):
    decision: Decision
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)
    percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)


class ReferralTransactionSchema(ResponseModel):
    id: str
    referrer_id: str
    referred_id: str
    referred_plan: PlanName
    referred_deposit_amount: Decimal
    reward_amount: Decimal
    status: RequestStatus
    transaction_request_id: str
    rejection_reason: Optional[str]
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    created_at: datetime
