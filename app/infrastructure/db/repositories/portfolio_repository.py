"""
Portfolio Repository
Loads and persists the portfolio aggregate (portfolio row, plan buckets,
price history) with an optimistic version check on every write.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.errors import ConcurrentUpdateError
from app.domain.models import PlanBucket, PlanName, Portfolio, PricePoint
from app.infrastructure.db.models import (
    PlanNameEnum,
    PortfolioModel,
    PortfolioPlanModel,
    PriceHistoryModel,
)
from app.utils.time import now_utc_naive


def _dec(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _dec_or_none(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


class PortfolioRepository:
    """Repository for Portfolio aggregates"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user(
        self,
        user_id: str,
        for_update: bool = False,
        with_history: bool = False,
    ) -> Optional[Portfolio]:
        """
        Load a user's portfolio

        Args:
            user_id: Owner
            for_update: Take a row lock on the portfolio (where supported)
            with_history: Also load every bucket's price history

        Returns:
            Portfolio or None if the user has none yet
        """
        stmt = (
            select(PortfolioModel)
            .where(PortfolioModel.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        if model is None:
            return None

        plan_rows = (
            await self.session.execute(
                select(PortfolioPlanModel)
                .where(PortfolioPlanModel.portfolio_id == model.id)
                .order_by(PortfolioPlanModel.id)
                .execution_options(populate_existing=True)
            )
        ).scalars().all()

        history: Dict[int, List[PricePoint]] = defaultdict(list)
        if with_history and plan_rows:
            points = (
                await self.session.execute(
                    select(PriceHistoryModel)
                    .where(PriceHistoryModel.portfolio_plan_id.in_([p.id for p in plan_rows]))
                    .order_by(PriceHistoryModel.id)
                )
            ).scalars().all()
            for point in points:
                history[point.portfolio_plan_id].append(
                    PricePoint(value=_dec(point.value), updated_at=point.updated_at)
                )

        return self._to_domain(model, plan_rows, history)

    async def list_user_ids_with_accrual_rate(self) -> List[str]:
        """Owners of portfolios holding at least one bucket with a positive admin rate"""
        result = await self.session.execute(
            select(PortfolioModel.user_id)
            .join(PortfolioPlanModel, PortfolioPlanModel.portfolio_id == PortfolioModel.id)
            .where(
                PortfolioPlanModel.admin_return_rate.is_not(None),
                PortfolioPlanModel.admin_return_rate > 0,
            )
            .distinct()
            .order_by(PortfolioModel.user_id)
        )
        return list(result.scalars().all())

    async def save(self, portfolio: Portfolio) -> Portfolio:
        """
        Persist the aggregate and any newly appended price points.

        Raises:
            ConcurrentUpdateError: the row changed (or was created) since load
        """
        now = now_utc_naive()
        totals = dict(
            total_invested=portfolio.total_invested,
            current_value=portfolio.current_value,
            total_returns=portfolio.total_returns,
            total_returns_percentage=portfolio.total_returns_percentage,
            referral_rewards=portfolio.referral_rewards,
            referral_amount=portfolio.referral_amount,
            updated_at=now,
        )

        if portfolio.is_new:
            model = PortfolioModel(user_id=portfolio.user_id, version=1, created_at=now, **totals)
            self.session.add(model)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise ConcurrentUpdateError(
                    f"Portfolio for user {portfolio.user_id} was created concurrently"
                ) from exc
            portfolio.id = model.id
            portfolio.version = 1
            portfolio.created_at = now
        else:
            result = await self.session.execute(
                update(PortfolioModel)
                .where(
                    PortfolioModel.id == portfolio.id,
                    PortfolioModel.version == portfolio.version,
                )
                .values(version=PortfolioModel.version + 1, **totals)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrentUpdateError(
                    f"Portfolio {portfolio.id} changed since it was read (version {portfolio.version})"
                )
            portfolio.version += 1
        portfolio.updated_at = now

        for bucket in portfolio.plans:
            await self._save_bucket(portfolio.id, bucket)

        return portfolio

    async def _save_bucket(self, portfolio_id: str, bucket: PlanBucket) -> None:
        values = dict(
            invested=bucket.invested,
            current_value=bucket.current_value,
            returns=bucket.returns,
            return_rate_min=bucket.return_rate_min,
            return_rate_max=bucket.return_rate_max,
            admin_return_rate=bucket.admin_return_rate,
            last_accrual_at=bucket.last_accrual_at,
        )
        if bucket.id is None:
            model = PortfolioPlanModel(
                portfolio_id=portfolio_id,
                plan_name=PlanNameEnum(bucket.name.value),
                **values,
            )
            self.session.add(model)
            await self.session.flush()
            bucket.id = model.id
        else:
            await self.session.execute(
                update(PortfolioPlanModel)
                .where(PortfolioPlanModel.id == bucket.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )

        if bucket.pending_points:
            await self.session.execute(
                insert(PriceHistoryModel),
                [
                    {
                        "portfolio_plan_id": bucket.id,
                        "value": point.value,
                        "updated_at": point.updated_at,
                    }
                    for point in bucket.pending_points
                ],
            )
            bucket.pending_points.clear()

    @staticmethod
    def _to_domain(
        model: PortfolioModel,
        plan_rows: List[PortfolioPlanModel],
        history: Dict[int, List[PricePoint]],
    ) -> Portfolio:
        plans = [
            PlanBucket(
                id=row.id,
                name=PlanName(row.plan_name.value),
                invested=_dec(row.invested),
                current_value=_dec(row.current_value),
                returns=_dec(row.returns),
                return_rate_min=_dec_or_none(row.return_rate_min),
                return_rate_max=_dec_or_none(row.return_rate_max),
                admin_return_rate=_dec_or_none(row.admin_return_rate),
                last_accrual_at=row.last_accrual_at,
                price_history=list(history.get(row.id, [])),
            )
            for row in plan_rows
        ]
        return Portfolio(
            id=model.id,
            user_id=model.user_id,
            plans=plans,
            total_invested=_dec(model.total_invested),
            current_value=_dec(model.current_value),
            total_returns=_dec(model.total_returns),
            total_returns_percentage=_dec(model.total_returns_percentage),
            referral_rewards=_dec(model.referral_rewards),
            referral_amount=_dec(model.referral_amount),
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
