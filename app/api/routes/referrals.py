"""
Referral API Routes
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from app.api.deps import current_user_id, get_services, require_admin
from app.domain.models import RequestStatus
from app.domain.schemas.common import PageSchema, page_response
from app.domain.schemas.referrals import (
    ReferralCreateRequest,
    ReferralSchema,
    ReferralTransactionSchema,
    RewardCreateRequest,
    RewardDecisionRequest,
)
from app.services.container import LedgerServices

router = APIRouter()


@router.post("", response_model=ReferralSchema, status_code=201)
async def register_referral(
    payload: ReferralCreateRequest,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    referral = await services.referrals.register_referral(payload.referrer_id, payload.referred_id)
    return ReferralSchema.model_validate(referral)


@router.get("/me", response_model=List[ReferralSchema])
async def list_my_referrals(
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    return [ReferralSchema.model_validate(r) for r in await services.referrals.list_referrals(user_id)]


@router.get("/me/rewards", response_model=PageSchema[ReferralTransactionSchema])
async def list_my_rewards(
    status: Optional[RequestStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(current_user_id),
    services: LedgerServices = Depends(get_services),
):
    result = await services.referrals.list_rewards_for_user(user_id, status=status, page=page, limit=limit)
    return page_response(result, ReferralTransactionSchema)


@router.post("/rewards", response_model=ReferralTransactionSchema, status_code=201)
async def create_reward(
    payload: RewardCreateRequest,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    reward = await services.referrals.create_reward(
        payload.referred_id, payload.transaction_request_id, payload.reward_amount
    )
    return ReferralTransactionSchema.model_validate(reward)


@router.get("/rewards", response_model=PageSchema[ReferralTransactionSchema])
async def list_rewards(
    status: Optional[RequestStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    result = await services.referrals.list_rewards(status=status, page=page, limit=limit)
    return page_response(result, ReferralTransactionSchema)


@router.put("/rewards/{reward_id}/decision", response_model=ReferralTransactionSchema)
async def decide_reward(
    reward_id: str,
    payload: RewardDecisionRequest,
    services: LedgerServices = Depends(get_services),
    admin: str = Depends(require_admin),
):
    reward = await services.referrals.decide_reward(
        reward_id,
        payload.decision,
        approved_by=admin,
        rejection_reason=payload.rejection_reason,
        percentage=payload.percentage,
    )
    return ReferralTransactionSchema.model_validate(reward)
