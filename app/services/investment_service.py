"""
INVESTMENT REQUEST SERVICE

Investment instructions against a plan. Approval changes status only;
the portfolio is credited through deposits, not here.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.domain.errors import NotFoundError, ValidationError
from app.domain.models import (
    Decision,
    HistoryType,
    InvestmentRequest,
    Page,
    PlanName,
    RequestStatus,
)
from app.infrastructure.db.repositories.plan_repository import PlanRepository
from app.infrastructure.db.repositories.request_repository import InvestRequestRepository
from app.services.approval_orchestrator import ApprovalOrchestrator
from app.services.history_projection import HistoryProjection
from app.services.notification_service import NotificationService
from app.services.request_ledger import load_eligible_user
from app.services.unit_of_work import unit_of_work
from app.services.validation import parse_amount, parse_enum, require_text
from app.utils.time import end_of_day, start_of_day

logger = logging.getLogger(__name__)


class InvestmentService:

    def __init__(
        self,
        session_factory: async_sessionmaker,
        orchestrator: ApprovalOrchestrator,
        notifications: NotificationService,
    ):
        self.session_factory = session_factory
        self.orchestrator = orchestrator
        self.notifications = notifications

    async def submit_investment(
        self,
        user_id: str,
        amount: Union[Decimal, str, int],
        plan: Union[PlanName, str],
        wallet_address: str,
        note: Optional[str] = None,
    ) -> InvestmentRequest:
        """
        Raises:
            ValidationError: invalid amount / plan / wallet
            NotFoundError: unknown user
            ForbiddenError: unverified user, no registered wallet, or mismatch
        """
        amount = parse_amount(amount)
        plan = parse_enum(PlanName, plan, "plan")
        wallet_address = require_text(wallet_address, "wallet_address")

        async with unit_of_work(self.session_factory) as session:
            user = await load_eligible_user(
                session, user_id, wallet_address, require_registered_wallet=True
            )
            if await PlanRepository(session).get_by_name(plan) is None:
                raise ValidationError(f"Plan '{plan.value}' is not in the catalog")

            request = await InvestRequestRepository(session).create(
                user_id=user.id,
                amount=amount,
                plan=plan,
                wallet_address=wallet_address,
                note=note.strip() if note else None,
            )
            await HistoryProjection.record(
                session, request.id, user.id, amount, HistoryType.INVESTMENT
            )

        logger.info("Submitted investment request %s: user=%s amount=%s plan=%s",
                    request.id, user_id, amount, plan.value)
        try:
            await self.notifications.notify_admins(
                f"{user.name} ({user.email}) requested an investment of {amount} in the {plan.value} plan.",
                title="New Investment Request",
            )
        except Exception:
            logger.exception("Failed to notify admins about investment request %s", request.id)
        return request

    async def decide_investment(
        self,
        request_id: str,
        decision: Union[Decision, str],
        rejection_reason: Optional[str] = None,
    ) -> InvestmentRequest:
        return await self.orchestrator.decide_investment(request_id, decision, rejection_reason)

    async def get_investment(self, request_id: str) -> InvestmentRequest:
        async with self.session_factory() as session:
            request = await InvestRequestRepository(session).get(request_id)
        if request is None:
            raise NotFoundError(f"Investment request {request_id} not found")
        return request

    async def list_investments(
        self,
        status: Optional[RequestStatus] = None,
        plan: Optional[PlanName] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[InvestmentRequest]:
        if start and end and start > end:
            raise ValidationError("start date must not be after end date")
        async with self.session_factory() as session:
            return await InvestRequestRepository(session).list(
                status=status,
                plan=plan,
                start=start_of_day(start) if start else None,
                end=end_of_day(end) if end else None,
                search=search,
                page=page,
                limit=limit,
            )
