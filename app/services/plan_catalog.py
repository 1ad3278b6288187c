"""
PLAN CATALOG SERVICE

Administered definitions of the silver / gold / platinum tiers.
Read-only input to the ledger; written only by admin configuration.
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.errors import NotFoundError, ValidationError
from app.domain.models import Plan, PlanName
from app.infrastructure.db.repositories.plan_repository import PlanRepository
from app.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


DEFAULT_PLANS: List[Plan] = [
    Plan(
        name=PlanName.SILVER,
        min_investment=Decimal("50"),
        max_investment=Decimal("200"),
        min_return_rate=None,
        max_return_rate=None,
        features=["Basic support", "Access to limited traders", "Monthly reports"],
    ),
    Plan(
        name=PlanName.GOLD,
        min_investment=Decimal("201"),
        max_investment=Decimal("500"),
        min_return_rate=None,
        max_return_rate=None,
        features=[
            "Priority support",
            "Access to more traders",
            "Weekly reports",
            "Exclusive market insights",
        ],
    ),
    Plan(
        name=PlanName.PLATINUM,
        min_investment=Decimal("501"),
        max_investment=Decimal("1000"),
        min_return_rate=None,
        max_return_rate=None,
        features=[
            "24/7 dedicated support",
            "Access to all traders",
            "Daily reports",
            "Personal account manager",
            "Early access to new features",
        ],
    ),
]

UPDATABLE_FIELDS = (
    "min_investment",
    "max_investment",
    "min_return_rate",
    "max_return_rate",
    "features",
    "description",
    "is_active",
)

DECIMAL_FIELDS = ("min_investment", "max_investment", "min_return_rate", "max_return_rate")


def parse_plan_name(name) -> PlanName:
    """Unknown tier names are reported as NotFound, matching catalog lookups"""
    if isinstance(name, PlanName):
        return name
    try:
        return PlanName(str(name).strip().lower())
    except ValueError:
        raise NotFoundError(f"Subscription plan '{name}' not found")


class PlanCatalog:

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_plan(self, name) -> Plan:
        plan_name = parse_plan_name(name)
        async with self.session_factory() as session:
            return await self.get_plan_in(session, plan_name)

    @staticmethod
    async def get_plan_in(session: AsyncSession, name: PlanName) -> Plan:
        """Catalog lookup inside an open unit of work"""
        plan = await PlanRepository(session).get_by_name(name)
        if plan is None:
            raise NotFoundError(f"Subscription plan '{name.value}' not found")
        return plan

    async def list_plans(self) -> List[Plan]:
        async with self.session_factory() as session:
            return await PlanRepository(session).list_all()

    async def upsert_plan(self, name, fields: Dict[str, Any]) -> Plan:
        """
        Partial update (or create) of a catalog entry.

        Bound ordering is re-validated against the merged result, so
        changing only max_investment cannot leave min > max behind.

        Raises:
            NotFoundError: unknown plan name
            ValidationError: unknown field or inverted bounds
        """
        plan_name = parse_plan_name(name)
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown plan fields: {', '.join(sorted(unknown))}")

        changes = self._coerce(fields)

        async with unit_of_work(self.session_factory) as session:
            repo = PlanRepository(session)
            current = await repo.get_by_name(plan_name)
            if current is None:
                current = Plan(
                    name=plan_name,
                    min_investment=None,
                    max_investment=None,
                    min_return_rate=None,
                    max_return_rate=None,
                )
            merged = replace(current, **changes)
            saved = await repo.upsert(merged)

        logger.info("Plan %s updated: %s", plan_name.value, sorted(changes))
        return saved

    async def seed_defaults(self) -> List[str]:
        """Create any default plan that is absent; returns the names created"""
        created = []
        async with unit_of_work(self.session_factory) as session:
            repo = PlanRepository(session)
            for plan in DEFAULT_PLANS:
                if await repo.get_by_name(plan.name) is None:
                    await repo.upsert(plan)
                    created.append(plan.name.value)
        if created:
            logger.info("Seeded default plans: %s", ", ".join(created))
        return created

    @staticmethod
    def _coerce(fields: Dict[str, Any]) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for key, value in fields.items():
            if key in DECIMAL_FIELDS and value is not None:
                try:
                    value = Decimal(str(value))
                except ArithmeticError:
                    raise ValidationError(f"{key} must be a number")
                if value < 0:
                    raise ValidationError(f"{key} must be >= 0")
            elif key == "features":
                value = [str(f) for f in (value or [])]
            elif key == "is_active":
                value = bool(value)
            changes[key] = value
        return changes

