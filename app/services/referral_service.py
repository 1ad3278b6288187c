"""
REFERRAL SERVICE

Referral links and the reward transactions that feed a referrer's
portfolio. Decisions run through the ApprovalOrchestrator.
"""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import settings
from app.domain.errors import InvalidStateError, NotFoundError, ValidationError
from app.domain.models import (
    Decision,
    Page,
    Referral,
    ReferralTransaction,
    RequestStatus,
    RequestType,
)
from app.infrastructure.db.repositories.referral_repository import (
    ReferralRepository,
    ReferralTransactionRepository,
)
from app.infrastructure.db.repositories.request_repository import TransactionRequestRepository
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.services.approval_orchestrator import ApprovalOrchestrator
from app.services.unit_of_work import unit_of_work
from app.services.validation import parse_amount
from app.utils.time import now_utc_naive

logger = logging.getLogger(__name__)


class ReferralService:

    def __init__(
        self,
        session_factory: async_sessionmaker,
        orchestrator: ApprovalOrchestrator,
        expiry_days: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.orchestrator = orchestrator
        self.expiry_days = expiry_days if expiry_days is not None else settings.REFERRAL_REWARD_EXPIRY_DAYS

    async def register_referral(self, referrer_id: str, referred_id: str) -> Referral:
        """
        Link a referred user to their referrer. A user can be referred once.

        Raises:
            ValidationError: self-referral or user already referred
            NotFoundError: unknown referrer / referred user
        """
        if referrer_id == referred_id:
            raise ValidationError("Users cannot refer themselves")

        async with unit_of_work(self.session_factory) as session:
            users = UserRepository(session)
            for user_id in (referrer_id, referred_id):
                if await users.get(user_id) is None:
                    raise NotFoundError(f"User {user_id} not found")

            referrals = ReferralRepository(session)
            if await referrals.get_by_referred(referred_id) is not None:
                raise ValidationError(f"User {referred_id} has already been referred")

            referral = await referrals.create(
                referrer_id=referrer_id,
                referred_id=referred_id,
                reward_expires_at=now_utc_naive() + timedelta(days=self.expiry_days),
            )

        logger.info("Registered referral %s -> %s", referrer_id, referred_id)
        return referral

    async def create_reward(
        self,
        referred_id: str,
        transaction_request_id: str,
        reward_amount: Union[Decimal, str, int],
    ) -> ReferralTransaction:
        """
        Record a pending reward for the referrer of `referred_id`, backed by
        one of the referred user's approved deposits.

        Raises:
            NotFoundError: no referral link or unknown request
            InvalidStateError: reward already claimed
            ValidationError: expired link, or the request is not an approved
                deposit of the referred user
        """
        reward_amount = parse_amount(reward_amount, "reward_amount")

        async with unit_of_work(self.session_factory) as session:
            referral = await ReferralRepository(session).get_by_referred(referred_id)
            if referral is None:
                raise NotFoundError(f"User {referred_id} was not referred")
            if referral.reward_claimed:
                raise InvalidStateError("Referral reward already claimed")
            if referral.reward_expires_at < now_utc_naive():
                raise ValidationError("Referral reward period has expired")

            request = await TransactionRequestRepository(session).get(transaction_request_id)
            if request is None:
                raise NotFoundError(f"Transaction request {transaction_request_id} not found")
            if request.user_id != referred_id:
                raise ValidationError("Transaction request does not belong to the referred user")
            if request.type != RequestType.DEPOSIT or request.status != RequestStatus.APPROVED:
                raise ValidationError("Referral rewards require an approved deposit")

            reward = await ReferralTransactionRepository(session).create(
                referrer_id=referral.referrer_id,
                referred_id=referred_id,
                referred_plan=request.plan,
                referred_deposit_amount=request.amount,
                reward_amount=reward_amount,
                transaction_request_id=request.id,
            )

        logger.info("Created referral reward %s for referrer %s", reward.id, reward.referrer_id)
        return reward

    async def decide_reward(
        self,
        reward_id: str,
        decision: Union[Decision, str],
        approved_by: str,
        rejection_reason: Optional[str] = None,
        percentage: Optional[Decimal] = None,
    ) -> ReferralTransaction:
        return await self.orchestrator.decide_referral_reward(
            reward_id, decision, approved_by, rejection_reason=rejection_reason, percentage=percentage
        )

    async def list_referrals(self, referrer_id: str) -> List[Referral]:
        async with self.session_factory() as session:
            return await ReferralRepository(session).list_by_referrer(referrer_id)

    async def list_rewards_for_user(
        self,
        user_id: str,
        status: Optional[RequestStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[ReferralTransaction]:
        async with self.session_factory() as session:
            return await ReferralTransactionRepository(session).list(
                status=status, referrer_id=user_id, page=page, limit=limit
            )

    async def list_rewards(
        self,
        status: Optional[RequestStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[ReferralTransaction]:
        async with self.session_factory() as session:
            return await ReferralTransactionRepository(session).list(
                status=status, page=page, limit=limit
            )
