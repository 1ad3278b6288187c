from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

from app.domain.models import PlanName, Portfolio
from app.domain.schemas.common import ResponseModel, StrictModel


class PricePointSchema(ResponseModel):
    value: Decimal
    updated_at: datetime


class ReturnRateSchema(BaseModel):
    min: Optional[Decimal]
    max: Optional[Decimal]


class PlanBucketSchema(BaseModel):
    name: PlanName
    invested: Decimal
    current_value: Decimal
    returns: Decimal
    return_rate: ReturnRateSchema
    admin_return_rate: Optional[Decimal]
    last_accrual_at: Optional[datetime]
    price_history: List[PricePointSchema]


class PortfolioSchema(BaseModel):
    user_id: str
    total_invested: Decimal
    current_value: Decimal
    total_returns: Decimal
    total_returns_percentage: Decimal
    referral_rewards: Decimal
    referral_amount: Decimal
    plans: List[PlanBucketSchema]
    updated_at: Optional[datetime]

    @classmethod
    def from_domain(cls, portfolio: Portfolio) -> "PortfolioSchema":
        return cls(
            user_id=portfolio.user_id,
            total_invested=portfolio.total_invested,
            current_value=portfolio.current_value,
            total_returns=portfolio.total_returns,
            total_returns_percentage=portfolio.total_returns_percentage,
            referral_rewards=portfolio.referral_rewards,
            referral_amount=portfolio.referral_amount,
            updated_at=portfolio.updated_at,
            plans=[
                PlanBucketSchema(
                    name=bucket.name,
                    invested=bucket.invested,
                    current_value=bucket.current_value,
                    returns=bucket.returns,
                    return_rate=ReturnRateSchema(
                        min=bucket.return_rate_min, max=bucket.return_rate_max
                    ),
                    admin_return_rate=bucket.admin_return_rate,
                    last_accrual_at=bucket.last_accrual_at,
                    price_history=[
                        PricePointSchema.model_validate(p) for p in bucket.price_history
                    ],
                )
                for bucket in portfolio.plans
            ],
        )


class ReturnRateUpdateRequest(StrictModel):
    annual_rate: Optional[Decimal] = Field(ge=0, max_digits=10, decimal_places=4)


class AccrualReportSchema(BaseModel):
    scanned: int
    updated: int
    failed: int
