"""
Investment Request API Routes
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.api.deps import current_user_id, get_services, require_admin
from app.domain.models import PlanName, RequestStatus
from app.domain.schemas.common import PageSchema, page_response
from app.domain.schemas.investments import InvestmentRequestSchema, InvestmentSubmitRequest
from app.domain.schemas.transactions import DecisionRequest
from app.services.container import LedgerServices

router = APIRouter()


@router.post("", response_model=InvestmentRequestSchema, status_code=201)
async def submit_investment(
    payload: InvestmentSubmitRequest,
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    request = await services.investments.submit_investment(
        user_id=user_id,
        amount=payload.amount,
        plan=payload.plan,
        wallet_address=payload.wallet_address,
        note=payload.note,
    )
    return InvestmentRequestSchema.model_validate(request)


@router.get("", response_model=PageSchema[InvestmentRequestSchema])
async def list_investments(
    status: Optional[RequestStatus] = None,
    plan: Optional[PlanName] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    result = await services.investments.list_investments(
        status=status,
        plan=plan,
        start=start_date,
        end=end_date,
        search=search,
        page=page,
        limit=limit,
    )
    return page_response(result, InvestmentRequestSchema)


@router.get("/{request_id}", response_model=InvestmentRequestSchema)
async def get_investment(
    request_id: str,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    return InvestmentRequestSchema.model_validate(
        await services.investments.get_investment(request_id)
    )


@router.put("/{request_id}/decision", response_model=InvestmentRequestSchema)
async def decide_investment(
    request_id: str,
    payload: DecisionRequest,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    """Status-only decision; the portfolio is not touched"""
    request = await services.investments.decide_investment(
        request_id, payload.decision, payload.rejection_reason
    )
    return InvestmentRequestSchema.model_validate(request)
