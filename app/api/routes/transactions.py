"""
Transaction Request API Routes
Deposit / withdrawal submission and admin decisions
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.api.deps import current_user_id, get_services, require_admin
from app.domain.models import PlanName, RequestStatus, RequestType
from app.domain.schemas.common import MessageSchema, PageSchema, page_response
from app.domain.schemas.transactions import (
    DecisionRequest,
    TransactionRequestSchema,
    TransactionSubmitRequest,
)
from app.services.container import LedgerServices

router = APIRouter()


@router.post("", response_model=TransactionRequestSchema, status_code=201)
async def submit_request(
    payload: TransactionSubmitRequest,
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    request = await services.requests.submit(
        user_id=user_id,
        amount=payload.amount,
        request_type=payload.type,
        plan=payload.plan,
        wallet_address=payload.wallet_address,
        wallet_tx_id=payload.wallet_tx_id,
        transaction_image=payload.transaction_image,
    )
    return TransactionRequestSchema.model_validate(request)


@router.get("/me", response_model=PageSchema[TransactionRequestSchema])
async def list_my_requests(
    status: Optional[RequestStatus] = None,
    type: Optional[RequestType] = None,
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|amount|status|type)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    result = await services.requests.list_for_user(
        user_id,
        status=status,
        request_type=type,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return page_response(result, TransactionRequestSchema)


@router.get("", response_model=PageSchema[TransactionRequestSchema])
async def list_requests(
    status: Optional[RequestStatus] = None,
    type: Optional[RequestType] = None,
    plan: Optional[PlanName] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    result = await services.requests.list(
        status=status,
        request_type=type,
        plan=plan,
        start=start_date,
        end=end_date,
        search=search,
        page=page,
        limit=limit,
    )
    return page_response(result, TransactionRequestSchema)


@router.get("/{request_id}", response_model=TransactionRequestSchema)
async def get_request(
    request_id: str,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    return TransactionRequestSchema.model_validate(await services.requests.get(request_id))


@router.put("/{request_id}/decision", response_model=TransactionRequestSchema)
async def decide_request(
    request_id: str,
    payload: DecisionRequest,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    """
    Approve or reject a pending request.
    409 with code "already_decided" if the request is no longer pending.
    """
    request = await services.requests.decide(
        request_id, payload.decision, payload.rejection_reason
    )
    return TransactionRequestSchema.model_validate(request)


@router.delete("/{request_id}", response_model=MessageSchema)
async def delete_request(
    request_id: str,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    await services.requests.delete(request_id)
    return MessageSchema(message="Transaction request deleted")
