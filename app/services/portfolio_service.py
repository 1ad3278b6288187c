"""
PORTFOLIO SERVICE

Reads of the portfolio aggregate and the admin return-rate control.
All writes go through PortfolioLedger.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.domain.errors import NotFoundError, ValidationError
from app.domain.models import PlanName, Portfolio
from app.infrastructure.db.repositories.portfolio_repository import PortfolioRepository
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.services.portfolio_ledger import PortfolioLedger
from app.services.unit_of_work import run_with_retry
from app.services.validation import parse_enum

logger = logging.getLogger(__name__)


class PortfolioService:

    def __init__(
        self,
        session_factory: async_sessionmaker,
        ledger: Optional[PortfolioLedger] = None,
        max_retries: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.ledger = ledger or PortfolioLedger()
        self.max_retries = max_retries if max_retries is not None else settings.DECISION_MAX_RETRIES

    async def get_portfolio(self, user_id: str, with_history: bool = True) -> Portfolio:
        """
        Raises:
            NotFoundError: the user has no portfolio yet
        """
        async with self.session_factory() as session:
            portfolio = await PortfolioRepository(session).get_by_user(
                user_id, with_history=with_history
            )
        if portfolio is None:
            raise NotFoundError(f"Portfolio for user {user_id} not found")
        return portfolio

    async def set_plan_return_rate(
        self,
        user_id: str,
        plan: Union[PlanName, str],
        annual_rate: Optional[Union[Decimal, str, float]],
    ) -> Portfolio:
        """
        Assign the annual rate (percent) that daily accrual applies to one
        bucket. None clears it. Creates the portfolio if needed.
        """
        plan = parse_enum(PlanName, plan, "plan")
        if annual_rate is not None:
            try:
                annual_rate = Decimal(str(annual_rate))
            except ArithmeticError:
                raise ValidationError("annual_rate must be a number")
            if annual_rate < 0:
                raise ValidationError("annual_rate must be >= 0")

        async def _work(session: AsyncSession) -> Portfolio:
            if await UserRepository(session).get(user_id) is None:
                raise NotFoundError(f"User {user_id} not found")
            return await self.ledger.set_return_rate(session, user_id, plan, annual_rate)

        portfolio = await run_with_retry(
            self.session_factory, _work, self.max_retries, f"set return rate {user_id}/{plan.value}"
        )
        logger.info("Return rate for %s/%s set to %s", user_id, plan.value, annual_rate)
        return portfolio
