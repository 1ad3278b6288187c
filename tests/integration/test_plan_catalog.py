from decimal import Decimal

import pytest

from app.domain.errors import NotFoundError, ValidationError
from app.domain.models import PlanName, PlanBucket


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seed_defaults_is_idempotent(services):
    created = await services.plans.seed_defaults()
    again = await services.plans.seed_defaults()

    assert created == ["silver", "gold", "platinum"]
    assert again == []
    plans = await services.plans.list_plans()
    assert [(p.name, p.min_investment, p.max_investment) for p in plans] == [
        (PlanName.SILVER, Decimal("50"), Decimal("200")),
        (PlanName.GOLD, Decimal("201"), Decimal("500")),
        (PlanName.PLATINUM, Decimal("501"), Decimal("1000")),
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_partial_update_keeps_other_fields(services, seeded_plans):
    updated = await services.plans.upsert_plan(
        "GOLD", {"min_return_rate": "8", "max_return_rate": "12.5", "description": "Mid tier"}
    )

    assert updated.min_return_rate == Decimal("8")
    assert updated.max_return_rate == Decimal("12.5")
    assert updated.min_investment == Decimal("201")
    assert updated.features[0] == "Priority support"
    stored = await services.plans.get_plan("gold")
    assert stored.description == "Mid tier"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_rejects_inverted_bounds(services, seeded_plans):
    with pytest.raises(ValidationError):
        await services.plans.upsert_plan("silver", {"max_investment": "10"})
    with pytest.raises(ValidationError):
        await services.plans.upsert_plan("silver", {"min_return_rate": "9", "max_return_rate": "3"})

    stored = await services.plans.get_plan("silver")
    assert stored.max_investment == Decimal("200")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_rejects_unknown_fields_and_plans(services, seeded_plans):
    with pytest.raises(ValidationError):
        await services.plans.upsert_plan("silver", {"colour": "grey"})
    with pytest.raises(ValidationError):
        await services.plans.upsert_plan("silver", {"min_investment": "-5"})
    with pytest.raises(NotFoundError):
        await services.plans.upsert_plan("diamond", {"min_investment": "5"})
    with pytest.raises(NotFoundError):
        await services.plans.get_plan("diamond")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_approval_syncs_bucket_bounds_from_catalog(services, seeded_plans, make_user, submit_and_decide):
    await services.plans.upsert_plan("gold", {"min_return_rate": "8", "max_return_rate": "12"})
    user = await make_user(name="Jo", wallet="TWalletJo")

    await submit_and_decide(user, "300", plan="gold")

    portfolio = await services.portfolios.get_portfolio(user.id)
    gold: PlanBucket = portfolio.bucket(PlanName.GOLD)
    assert gold.return_rate_min == Decimal("8")
    assert gold.return_rate_max == Decimal("12")
    silver = portfolio.bucket(PlanName.SILVER)
    assert silver.return_rate_min is None
