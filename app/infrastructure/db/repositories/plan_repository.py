"""
Repository for the Plan Catalog
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import Plan, PlanName
from app.infrastructure.db.models import PlanModel, PlanNameEnum
from app.utils.time import now_utc_naive


def _dec(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


class PlanRepository:
    """CRUD for plan catalog entries"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_name(self, name: PlanName) -> Optional[Plan]:
        model = await self._get_model(name)
        return self._to_domain(model) if model else None

    async def list_all(self) -> List[Plan]:
        result = await self.session.execute(select(PlanModel).order_by(PlanModel.id))
        return [self._to_domain(m) for m in result.scalars().all()]

    async def upsert(self, plan: Plan) -> Plan:
        """
        Insert or overwrite the catalog entry for plan.name

        Args:
            plan: Fully validated Plan domain object

        Returns:
            Persisted plan
        """
        model = await self._get_model(plan.name)
        now = now_utc_naive()
        if model is None:
            model = PlanModel(name=PlanNameEnum(plan.name.value), created_at=now)
            self.session.add(model)

        model.min_investment = plan.min_investment
        model.max_investment = plan.max_investment
        model.min_return_rate = plan.min_return_rate
        model.max_return_rate = plan.max_return_rate
        model.features = list(plan.features)
        model.description = plan.description
        model.is_active = plan.is_active
        model.updated_at = now

        await self.session.flush()
        return self._to_domain(model)

    async def _get_model(self, name: PlanName) -> Optional[PlanModel]:
        result = await self.session.execute(
            select(PlanModel).where(PlanModel.name == PlanNameEnum(name.value))
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(model: PlanModel) -> Plan:
        return Plan(
            name=PlanName(model.name.value),
            min_investment=_dec(model.min_investment),
            max_investment=_dec(model.max_investment),
            min_return_rate=_dec(model.min_return_rate),
            max_return_rate=_dec(model.max_return_rate),
            features=list(model.features or []),
            is_active=bool(model.is_active),
            description=model.description,
        )
