"""
Plan Catalog API Routes
"""

from fastapi import APIRouter, Depends
from typing import List

from app.api.deps import get_services, require_admin
from app.domain.schemas.plans import PlanSchema, PlanUpdateRequest
from app.services.container import LedgerServices

router = APIRouter()


@router.get("", response_model=List[PlanSchema])
async def list_plans(services: LedgerServices = Depends(get_services)):
    plans = await services.plans.list_plans()
    return [PlanSchema.model_validate(plan) for plan in plans]


@router.get("/{name}", response_model=PlanSchema)
async def get_plan(name: str, services: LedgerServices = Depends(get_services)):
    return PlanSchema.model_validate(await services.plans.get_plan(name))


@router.put("/{name}", response_model=PlanSchema)
async def update_plan(
    name: str,
    payload: PlanUpdateRequest,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    """
    Partial update of a plan; bounds are re-validated on the merged plan
    """
    plan = await services.plans.upsert_plan(name, payload.model_dump(exclude_unset=True))
    return PlanSchema.model_validate(plan)
