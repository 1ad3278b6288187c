from decimal import Decimal
from pydantic import Field
from typing import List, Optional

from app.domain.models import PlanName
from app.domain.schemas.common import ResponseModel, StrictModel


class PlanSchema(ResponseModel):
    name: PlanName
    min_investment: Optional[Decimal]
    max_investment: Optional[Decimal]
    min_return_rate: Optional[Decimal]
    max_return_rate: Optional[Decimal]
    features: List[str]
    is_active: bool
    description: Optional[str] = None


class PlanUpdateRequest(StrictModel):
    min_investment: Optional[Decimal] = Field(default=None, ge=0, max_digits=18, decimal_places=6)
    max_investment: Optional[Decimal] = Field(default=None, ge=0, max_digits=18, decimal_places=6)
    min_return_rate: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=4)
    max_return_rate: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=4)
    features: Optional[List[str]] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
