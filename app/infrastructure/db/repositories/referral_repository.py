"""
Referral Repositories
Referrer/referred links and the reward transactions awaiting approval.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import (
    Page,
    PlanName,
    Referral,
    ReferralTransaction,
    RequestStatus,
)
from app.infrastructure.db.models import (
    PlanNameEnum,
    ReferralModel,
    ReferralTransactionModel,
    RequestStatusEnum,
)
from app.infrastructure.db.repositories.pagination import paginate
from app.utils.time import now_utc_naive


class ReferralRepository:
    """Repository for referral links"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        referrer_id: str,
        referred_id: str,
        reward_expires_at: datetime,
    ) -> Referral:
        model = ReferralModel(
            referrer_id=referrer_id,
            referred_id=referred_id,
            reward_expires_at=reward_expires_at,
            reward_claimed=False,
            created_at=now_utc_naive(),
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def get_by_referred(self, referred_id: str) -> Optional[Referral]:
        result = await self.session.execute(
            select(ReferralModel)
            .where(ReferralModel.referred_id == referred_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_by_referrer(self, referrer_id: str) -> List[Referral]:
        result = await self.session.execute(
            select(ReferralModel)
            .where(ReferralModel.referrer_id == referrer_id)
            .order_by(ReferralModel.created_at.desc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def mark_claimed(self, referral_id: str) -> bool:
        """Flip reward_claimed once; False if it was already claimed"""
        result = await self.session.execute(
            update(ReferralModel)
            .where(ReferralModel.id == referral_id, ReferralModel.reward_claimed.is_(False))
            .values(reward_claimed=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _to_domain(model: ReferralModel) -> Referral:
        return Referral(
            id=model.id,
            referrer_id=model.referrer_id,
            referred_id=model.referred_id,
            reward_expires_at=model.reward_expires_at,
            reward_claimed=bool(model.reward_claimed),
            created_at=model.created_at,
        )


class ReferralTransactionRepository:
    """Repository for referral reward transactions"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        referrer_id: str,
        referred_id: str,
        referred_plan: PlanName,
        referred_deposit_amount: Decimal,
        reward_amount: Decimal,
        transaction_request_id: str,
    ) -> ReferralTransaction:
        model = ReferralTransactionModel(
            referrer_id=referrer_id,
            referred_id=referred_id,
            referred_plan=PlanNameEnum(referred_plan.value),
            referred_deposit_amount=referred_deposit_amount,
            reward_amount=reward_amount,
            status=RequestStatusEnum.PENDING,
            transaction_request_id=transaction_request_id,
            created_at=now_utc_naive(),
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def get(self, reward_id: str, for_update: bool = False) -> Optional[ReferralTransaction]:
        stmt = select(ReferralTransactionModel).where(ReferralTransactionModel.id == reward_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def exists_for_request(self, transaction_request_id: str) -> bool:
        result = await self.session.execute(
            select(ReferralTransactionModel.id)
            .where(ReferralTransactionModel.transaction_request_id == transaction_request_id)
            .limit(1)
        )
        return result.first() is not None

    async def transition_status(
        self,
        reward_id: str,
        new_status: RequestStatus,
        approved_by: str,
        rejection_reason: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> bool:
        """Compare-and-set out of pending; True if this call won"""
        result = await self.session.execute(
            update(ReferralTransactionModel)
            .where(
                ReferralTransactionModel.id == reward_id,
                ReferralTransactionModel.status == RequestStatusEnum.PENDING,
            )
            .values(
                status=RequestStatusEnum(new_status.value),
                approved_by=approved_by,
                approved_at=at or now_utc_naive(),
                rejection_reason=rejection_reason,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list(
        self,
        status: Optional[RequestStatus] = None,
        referrer_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[ReferralTransaction]:
        stmt = select(ReferralTransactionModel)
        if status:
            stmt = stmt.where(ReferralTransactionModel.status == RequestStatusEnum(status.value))
        if referrer_id:
            stmt = stmt.where(ReferralTransactionModel.referrer_id == referrer_id)
        stmt = stmt.order_by(ReferralTransactionModel.created_at.desc(), ReferralTransactionModel.id)
        return await paginate(self.session, stmt, page, limit, self._to_domain)

    @staticmethod
    def _to_domain(model: ReferralTransactionModel) -> ReferralTransaction:
        return ReferralTransaction(
            id=model.id,
            referrer_id=model.referrer_id,
            referred_id=model.referred_id,
            referred_plan=PlanName(model.referred_plan.value),
            referred_deposit_amount=Decimal(str(model.referred_deposit_amount)),
            reward_amount=Decimal(str(model.reward_amount)),
            status=RequestStatus(model.status.value),
            transaction_request_id=model.transaction_request_id,
            rejection_reason=model.rejection_reason,
            approved_by=model.approved_by,
            approved_at=model.approved_at,
            created_at=model.created_at,
        )
