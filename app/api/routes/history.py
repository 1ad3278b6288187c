"""
Transaction History API Routes
"""

from datetime import date
from decimal import Decimal
from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.api.deps import current_user_id, get_services, require_admin
from app.domain.models import HistoryType, RequestStatus
from app.domain.schemas.common import PageSchema, page_response
from app.domain.schemas.history import HistoryEntrySchema
from app.services.container import LedgerServices

router = APIRouter()


@router.get("/me", response_model=PageSchema[HistoryEntrySchema])
async def list_my_history(
    status: Optional[RequestStatus] = None,
    type: Optional[HistoryType] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|amount|status|type)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    result = await services.history.list_for_user(
        user_id,
        status=status,
        entry_type=type,
        on_date=on_date,
        min_amount=min_amount,
        max_amount=max_amount,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return page_response(result, HistoryEntrySchema)


@router.get("", response_model=PageSchema[HistoryEntrySchema])
async def list_history(
    status: Optional[RequestStatus] = None,
    type: Optional[HistoryType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    result = await services.history.list(
        status=status,
        entry_type=type,
        start=start_date,
        end=end_date,
        page=page,
        limit=limit,
    )
    return page_response(result, HistoryEntrySchema)


@router.get("/{entry_id}", response_model=HistoryEntrySchema)
async def get_history_entry(
    entry_id: str,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    return HistoryEntrySchema.model_validate(await services.history.get(entry_id))
