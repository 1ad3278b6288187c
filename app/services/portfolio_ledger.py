"""
PORTFOLIO LEDGER

The single write path into the portfolio aggregate. Approvals, referral
rewards, return-rate changes and scheduled accrual all go through
mutate(): load (or lazily create) -> apply -> recompute -> verify -> save.

Runs inside the caller's unit of work; never commits.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import Plan, PlanName, Portfolio, TransactionRequest
from app.domain.services.portfolio_engine import PortfolioEngine
from app.infrastructure.db.repositories.portfolio_repository import PortfolioRepository

logger = logging.getLogger(__name__)


class PortfolioLedger:

    def __init__(self, engine: Optional[PortfolioEngine] = None):
        self.engine = engine or PortfolioEngine()

    async def mutate(
        self,
        session: AsyncSession,
        user_id: str,
        mutation: Callable[[Portfolio], None],
        create_if_missing: bool = True,
    ) -> Optional[Portfolio]:
        """
        Apply `mutation` to the user's portfolio and persist it.

        Returns:
            The saved portfolio, or None when it does not exist and
            create_if_missing is False
        """
        repo = PortfolioRepository(session)
        portfolio = await repo.get_by_user(user_id, for_update=True)
        if portfolio is None:
            if not create_if_missing:
                return None
            portfolio = self.engine.new_portfolio(user_id)
            logger.info("Creating portfolio for user %s", user_id)

        mutation(portfolio)
        self.engine.recompute(portfolio)
        self.engine.verify(portfolio)
        return await repo.save(portfolio)

    async def apply_transaction(
        self,
        session: AsyncSession,
        request: TransactionRequest,
        plan: Plan,
        at: datetime,
    ) -> Portfolio:
        def _apply(portfolio: Portfolio) -> None:
            self.engine.apply_transaction(
                portfolio, request.type, request.plan, request.amount, at, plan=plan
            )

        return await self.mutate(session, request.user_id, _apply)

    async def add_referral_reward(
        self,
        session: AsyncSession,
        user_id: str,
        reward_amount: Decimal,
        referred_deposit_amount: Decimal,
    ) -> Portfolio:
        def _apply(portfolio: Portfolio) -> None:
            self.engine.add_referral_reward(portfolio, reward_amount, referred_deposit_amount)

        return await self.mutate(session, user_id, _apply)

    async def set_return_rate(
        self,
        session: AsyncSession,
        user_id: str,
        plan_name: PlanName,
        annual_rate: Optional[Decimal],
    ) -> Portfolio:
        def _apply(portfolio: Portfolio) -> None:
            self.engine.set_return_rate(portfolio.bucket(plan_name), annual_rate)

        return await self.mutate(session, user_id, _apply)

    async def accrue(self, session: AsyncSession, user_id: str, at: datetime) -> Decimal:
        """One day of returns on every eligible bucket; returns the amount added"""
        accrued = {"total": Decimal("0")}

        def _apply(portfolio: Portfolio) -> None:
            accrued["total"] = self.engine.accrue_portfolio(portfolio, at)

        await self.mutate(session, user_id, _apply, create_if_missing=False)
        return accrued["total"]
