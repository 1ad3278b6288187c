"""
REQUEST LEDGER

Deposit / withdrawal requests: submission, decision, reads and admin
cleanup. A request and its history row are always created together.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.errors import ForbiddenError, NotFoundError, ValidationError
from app.domain.models import (
    Decision,
    HistoryType,
    Page,
    PlanName,
    RequestStatus,
    RequestType,
    TransactionRequest,
    User,
)
from app.infrastructure.db.repositories.plan_repository import PlanRepository
from app.infrastructure.db.repositories.referral_repository import ReferralTransactionRepository
from app.infrastructure.db.repositories.request_repository import TransactionRequestRepository
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.services.approval_orchestrator import ApprovalOrchestrator
from app.services.history_projection import HistoryProjection
from app.services.notification_service import NotificationService
from app.services.unit_of_work import unit_of_work
from app.services.validation import parse_amount, parse_enum, require_text
from app.utils.time import end_of_day, start_of_day

logger = logging.getLogger(__name__)


async def load_eligible_user(
    session: AsyncSession,
    user_id: str,
    wallet_address: str,
    require_registered_wallet: bool = False,
) -> User:
    """
    Gate a submission on the user directory.

    Raises:
        NotFoundError: unknown user
        ForbiddenError: unverified user, or wallet does not match the one on file
    """
    user = await UserRepository(session).get(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    if not user.can_transact:
        raise ForbiddenError("Document verification required before submitting requests")
    if require_registered_wallet and not user.trust_wallet_address:
        raise ForbiddenError("Register a wallet address before submitting investment requests")
    if user.trust_wallet_address and user.trust_wallet_address != wallet_address:
        raise ForbiddenError("Wallet address does not match the registered wallet")
    return user


class RequestLedger:

    def __init__(
        self,
        session_factory: async_sessionmaker,
        orchestrator: ApprovalOrchestrator,
        notifications: NotificationService,
    ):
        self.session_factory = session_factory
        self.orchestrator = orchestrator
        self.notifications = notifications

    async def submit(
        self,
        user_id: str,
        amount: Union[Decimal, str, int],
        request_type: Union[RequestType, str],
        plan: Union[PlanName, str],
        wallet_address: str,
        wallet_tx_id: Optional[str] = None,
        transaction_image: Optional[str] = None,
    ) -> TransactionRequest:
        """
        Create a pending request plus its pending history row.

        Raises:
            ValidationError: missing / invalid field, unknown plan,
                deposit without proof image
            NotFoundError: unknown user
            ForbiddenError: unverified user or mismatched wallet
        """
        amount = parse_amount(amount)
        request_type = parse_enum(RequestType, request_type, "type")
        plan = parse_enum(PlanName, plan, "plan")
        wallet_address = require_text(wallet_address, "wallet_address")
        if request_type == RequestType.DEPOSIT and not (transaction_image and transaction_image.strip()):
            raise ValidationError("transaction_image is required for deposits")

        async with unit_of_work(self.session_factory) as session:
            user = await load_eligible_user(session, user_id, wallet_address)
            if await PlanRepository(session).get_by_name(plan) is None:
                raise ValidationError(f"Plan '{plan.value}' is not in the catalog")

            request = await TransactionRequestRepository(session).create(
                user_id=user.id,
                amount=amount,
                request_type=request_type,
                plan=plan,
                wallet_address=wallet_address,
                wallet_tx_id=wallet_tx_id,
                transaction_image=transaction_image if request_type == RequestType.DEPOSIT else None,
            )
            await HistoryProjection.record(
                session, request.id, user.id, amount, HistoryType(request_type.value)
            )

        logger.info(
            "Submitted %s request %s: user=%s amount=%s plan=%s",
            request_type.value, request.id, user_id, amount, plan.value,
        )
        await self._notify_admins(request, user)
        return request

    async def decide(
        self,
        request_id: str,
        decision: Union[Decision, str],
        rejection_reason: Optional[str] = None,
    ) -> TransactionRequest:
        return await self.orchestrator.decide_transaction(request_id, decision, rejection_reason)

    async def get(self, request_id: str) -> TransactionRequest:
        async with self.session_factory() as session:
            request = await TransactionRequestRepository(session).get(request_id)
        if request is None:
            raise NotFoundError(f"Transaction request {request_id} not found")
        return request

    async def list(
        self,
        status: Optional[RequestStatus] = None,
        request_type: Optional[RequestType] = None,
        plan: Optional[PlanName] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[TransactionRequest]:
        if start and end and start > end:
            raise ValidationError("start date must not be after end date")
        async with self.session_factory() as session:
            return await TransactionRequestRepository(session).list(
                status=status,
                request_type=request_type,
                plan=plan,
                start=start_of_day(start) if start else None,
                end=end_of_day(end) if end else None,
                search=search,
                page=page,
                limit=limit,
            )

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[RequestStatus] = None,
        request_type: Optional[RequestType] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Page[TransactionRequest]:
        async with self.session_factory() as session:
            return await TransactionRequestRepository(session).list_for_user(
                user_id,
                status=status,
                request_type=request_type,
                sort_by=sort_by,
                sort_order=sort_order,
                page=page,
                limit=limit,
            )

    async def delete(self, request_id: str) -> None:
        """
        Admin cleanup. The history row is kept as the audit trace.

        Raises:
            NotFoundError: unknown request
            ValidationError: request is referenced by a referral reward
        """
        async with unit_of_work(self.session_factory) as session:
            if await ReferralTransactionRepository(session).exists_for_request(request_id):
                raise ValidationError(
                    f"Transaction request {request_id} is referenced by a referral reward"
                )
            if not await TransactionRequestRepository(session).delete(request_id):
                raise NotFoundError(f"Transaction request {request_id} not found")
        logger.info("Deleted transaction request %s", request_id)

    async def _notify_admins(self, request: TransactionRequest, user: User) -> None:
        try:
            await self.notifications.notify_admins(
                f"{user.name} ({user.email}) submitted a {request.type.value} request of "
                f"{request.amount} in the {request.plan.value} plan.",
                title=f"New {request.type.value.capitalize()} Request",
            )
        except Exception:
            logger.exception("Failed to notify admins about request %s", request.id)
