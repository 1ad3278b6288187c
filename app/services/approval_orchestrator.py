"""
APPROVAL ORCHESTRATOR

Turns an admin decision into one atomic unit of work:

    1. load the request inside the transaction (row lock where supported)
    2. reject if it is no longer pending
    3. compare-and-set the status out of pending
    4. approve only: apply the ledger effect through PortfolioLedger
    5. mirror the new status onto the history row
    6. commit (or roll back everything)
    7. after commit: notify, best-effort

Step 3 is the authoritative double-approval guard: the UPDATE re-checks
status='pending' at write time, so of two racing decisions at most one
matches the row. Portfolio writes carry a version check; a lost race
retries the whole unit, and the retry fails fast at step 2 if the request
was meanwhile decided.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.domain.errors import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.domain.models import (
    Decision,
    InvestmentRequest,
    ReferralTransaction,
    RequestStatus,
    TransactionRequest,
)
from app.infrastructure.db.repositories.referral_repository import (
    ReferralRepository,
    ReferralTransactionRepository,
)
from app.infrastructure.db.repositories.request_repository import (
    InvestRequestRepository,
    TransactionRequestRepository,
)
from app.services.history_projection import HistoryProjection
from app.services.notification_service import NotificationService
from app.services.plan_catalog import PlanCatalog
from app.services.portfolio_ledger import PortfolioLedger
from app.services.unit_of_work import run_with_retry
from app.services.validation import parse_enum
from app.utils.time import now_utc_naive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Outcome:
    user_id: str
    title: str
    message: str


def _prepare(decision: Union[Decision, str], rejection_reason: Optional[str]):
    decision = parse_enum(Decision, decision, "decision")
    reason = rejection_reason.strip() if rejection_reason else None
    if decision is Decision.REJECT and not reason:
        raise ValidationError("rejection_reason is required when rejecting")
    if decision is Decision.APPROVE:
        reason = None
    return decision, reason


def _require_pending(kind: str, request_id: str, status: RequestStatus) -> None:
    if status != RequestStatus.PENDING:
        raise InvalidStateError(f"{kind} {request_id} already decided (status={status.value})")


class ApprovalOrchestrator:

    def __init__(
        self,
        session_factory: async_sessionmaker,
        notifications: NotificationService,
        ledger: Optional[PortfolioLedger] = None,
        max_retries: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.notifications = notifications
        self.ledger = ledger or PortfolioLedger()
        self.max_retries = max_retries if max_retries is not None else settings.DECISION_MAX_RETRIES

    # ------------------------------------------------------------------
    # Deposit / withdrawal
    # ------------------------------------------------------------------

    async def decide_transaction(
        self,
        request_id: str,
        decision: Union[Decision, str],
        rejection_reason: Optional[str] = None,
    ) -> TransactionRequest:
        """
        Approve or reject a pending deposit / withdrawal.

        Raises:
            ValidationError: bad decision or missing rejection reason
            NotFoundError: unknown request (or its plan is missing)
            InvalidStateError: request already decided
            InternalError: storage failure; nothing was written
        """
        decision, reason = _prepare(decision, rejection_reason)

        async def _work(session: AsyncSession) -> TransactionRequest:
            at = now_utc_naive()
            requests = TransactionRequestRepository(session)

            request = await requests.get(request_id, for_update=True)
            if request is None:
                raise NotFoundError(f"Transaction request {request_id} not found")
            _require_pending("Transaction request", request_id, request.status)

            if not await requests.transition_status(request_id, decision.status, reason, at):
                raise InvalidStateError(f"Transaction request {request_id} already decided")

            if decision is Decision.APPROVE:
                plan = await PlanCatalog.get_plan_in(session, request.plan)
                portfolio = await self.ledger.apply_transaction(session, request, plan, at)
                logger.info(
                    "Applied %s of %s to %s/%s (portfolio version %s)",
                    request.type.value, request.amount, request.user_id,
                    request.plan.value, portfolio.version,
                )

            await HistoryProjection.mirror_status(session, request_id, decision.status)
            return await requests.get(request_id)

        decided = await run_with_retry(
            self.session_factory, _work, self.max_retries, f"decide transaction {request_id}"
        )
        logger.info("Transaction request %s %s", request_id, decided.status.value)

        await self._notify(self._transaction_outcome(decided))
        return decided

    # ------------------------------------------------------------------
    # Investment requests (status only)
    # ------------------------------------------------------------------

    async def decide_investment(
        self,
        request_id: str,
        decision: Union[Decision, str],
        rejection_reason: Optional[str] = None,
    ) -> InvestmentRequest:
        """Same guard and history mirror as deposits; no portfolio effect"""
        decision, reason = _prepare(decision, rejection_reason)

        async def _work(session: AsyncSession) -> InvestmentRequest:
            requests = InvestRequestRepository(session)
            request = await requests.get(request_id, for_update=True)
            if request is None:
                raise NotFoundError(f"Investment request {request_id} not found")
            _require_pending("Investment request", request_id, request.status)

            if not await requests.transition_status(request_id, decision.status, reason):
                raise InvalidStateError(f"Investment request {request_id} already decided")

            await HistoryProjection.mirror_status(session, request_id, decision.status)
            return await requests.get(request_id)

        decided = await run_with_retry(
            self.session_factory, _work, self.max_retries, f"decide investment {request_id}"
        )
        logger.info("Investment request %s %s", request_id, decided.status.value)

        if decided.status == RequestStatus.APPROVED:
            message = f"Your investment request of {decided.amount} in {decided.plan.value} plan has been approved."
        else:
            message = (
                f"Your investment request of {decided.amount} in {decided.plan.value} plan "
                f"has been rejected. Reason: {decided.rejection_reason}"
            )
        await self._notify(_Outcome(decided.user_id, "Investment Request Update", message))
        return decided

    # ------------------------------------------------------------------
    # Referral rewards
    # ------------------------------------------------------------------

    async def decide_referral_reward(
        self,
        reward_id: str,
        decision: Union[Decision, str],
        approved_by: str,
        rejection_reason: Optional[str] = None,
        percentage: Optional[Decimal] = None,
    ) -> ReferralTransaction:
        """
        Approve or reject a pending referral reward.

        Approval credits referral_rewards (and so current_value) on the
        referrer's portfolio and marks the referral claimed, in one unit.
        When `percentage` is given the reward must equal
        deposit * percentage / 100 within the configured tolerance.
        """
        decision, reason = _prepare(decision, rejection_reason)
        tolerance = Decimal(str(settings.REFERRAL_REWARD_TOLERANCE))

        async def _work(session: AsyncSession) -> ReferralTransaction:
            at = now_utc_naive()
            rewards = ReferralTransactionRepository(session)
            referrals = ReferralRepository(session)

            reward = await rewards.get(reward_id, for_update=True)
            if reward is None:
                raise NotFoundError(f"Referral reward {reward_id} not found")
            _require_pending("Referral reward", reward_id, reward.status)

            referral = None
            if decision is Decision.APPROVE:
                referral = await referrals.get_by_referred(reward.referred_id)
                if referral is None or referral.referrer_id != reward.referrer_id:
                    raise NotFoundError(f"No referral link behind reward {reward_id}")
                if referral.reward_claimed:
                    raise InvalidStateError("Referral reward already claimed")
                if referral.reward_expires_at < at:
                    raise ValidationError("Referral reward period has expired")
                if percentage is not None:
                    expected = reward.referred_deposit_amount * Decimal(str(percentage)) / Decimal("100")
                    if abs(expected - reward.reward_amount) > tolerance:
                        raise ValidationError(
                            f"Reward amount {reward.reward_amount} does not match "
                            f"{percentage}% of {reward.referred_deposit_amount} (expected {expected})"
                        )

            if not await rewards.transition_status(reward_id, decision.status, approved_by, reason, at):
                raise InvalidStateError(f"Referral reward {reward_id} already decided")

            if decision is Decision.APPROVE:
                await self.ledger.add_referral_reward(
                    session, reward.referrer_id, reward.reward_amount, reward.referred_deposit_amount
                )
                if not await referrals.mark_claimed(referral.id):
                    raise InvalidStateError("Referral reward already claimed")

            return await rewards.get(reward_id)

        decided = await run_with_retry(
            self.session_factory, _work, self.max_retries, f"decide referral reward {reward_id}"
        )
        logger.info("Referral reward %s %s by %s", reward_id, decided.status.value, approved_by)

        if decided.status == RequestStatus.APPROVED:
            message = f"Your referral reward of {decided.reward_amount} has been approved and added to your portfolio."
        else:
            message = f"Your referral reward of {decided.reward_amount} has been rejected. Reason: {decided.rejection_reason}"
        await self._notify(_Outcome(decided.referrer_id, "Referral Reward Update", message))
        return decided

    # ------------------------------------------------------------------

    @staticmethod
    def _transaction_outcome(request: TransactionRequest) -> _Outcome:
        kind = request.type.value.capitalize()
        if request.status == RequestStatus.APPROVED:
            message = f"Your {request.type.value} request of {request.amount} in {request.plan.value} plan has been approved."
        else:
            message = (
                f"Your {request.type.value} request of {request.amount} in {request.plan.value} plan "
                f"has been rejected. Reason: {request.rejection_reason}"
            )
        return _Outcome(request.user_id, f"{kind} Request Update", message)

    async def _notify(self, outcome: _Outcome) -> None:
        # Runs after commit; a failure here never changes the decision
        try:
            await self.notifications.notify(outcome.user_id, outcome.message, title=outcome.title)
        except Exception:
            logger.exception("Failed to notify user %s", outcome.user_id)
