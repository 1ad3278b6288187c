"""
Portfolio API Routes
Per-plan buckets, price history and admin return-rate controls
"""

import logging
from fastapi import APIRouter, Depends

from app.api.deps import current_user_id, get_services, require_admin
from app.domain.models import PlanName
from app.domain.schemas.portfolio import (
    AccrualReportSchema,
    PortfolioSchema,
    ReturnRateUpdateRequest,
)
from app.services.container import LedgerServices

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/me", response_model=PortfolioSchema)
async def get_my_portfolio(
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    return PortfolioSchema.from_domain(await services.portfolios.get_portfolio(user_id))


@router.get("/{user_id}", response_model=PortfolioSchema)
async def get_portfolio(
    user_id: str,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    return PortfolioSchema.from_domain(await services.portfolios.get_portfolio(user_id))


@router.put("/{user_id}/plans/{plan}/return-rate", response_model=PortfolioSchema)
async def set_return_rate(
    user_id: str,
    plan: PlanName,
    payload: ReturnRateUpdateRequest,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    """
    Set the annual return rate (percent) the daily accrual applies to one
    plan bucket; null clears it
    """
    portfolio = await services.portfolios.set_plan_return_rate(user_id, plan, payload.annual_rate)
    return PortfolioSchema.from_domain(portfolio)


@router.post("/accrual/run", response_model=AccrualReportSchema)
async def run_accrual(
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    """Trigger the daily accrual pass manually"""
    logger.info("Manual accrual run requested by %s", admin)
    report = await services.accrual.run_daily_accrual()
    return AccrualReportSchema(**report.to_dict())
