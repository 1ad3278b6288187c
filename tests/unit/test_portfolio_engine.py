"""
Unit Tests for PortfolioEngine
Bucket arithmetic and derived aggregates, no database
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.domain.errors import InternalError, ValidationError
from app.domain.models import Plan, PlanName, RequestType
from app.domain.services.portfolio_engine import PortfolioEngine

NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def engine():
    return PortfolioEngine()


def _silver(min_rate="5", max_rate="8"):
    return Plan(
        name=PlanName.SILVER,
        min_investment=Decimal("50"),
        max_investment=Decimal("200"),
        min_return_rate=Decimal(min_rate),
        max_return_rate=Decimal(max_rate),
    )


@pytest.mark.unit
def test_new_portfolio_seeds_every_tier_at_zero(engine):
    portfolio = engine.new_portfolio("u1")

    assert [b.name for b in portfolio.plans] == [PlanName.SILVER, PlanName.GOLD, PlanName.PLATINUM]
    assert all(b.invested == 0 and b.current_value == 0 for b in portfolio.plans)
    assert portfolio.is_new


@pytest.mark.unit
def test_deposit_credits_bucket_and_recomputes_totals(engine):
    portfolio = engine.new_portfolio("u1")

    bucket = engine.apply_transaction(
        portfolio, RequestType.DEPOSIT, PlanName.SILVER, Decimal("500"), NOW, plan=_silver()
    )

    assert bucket.invested == Decimal("500")
    assert bucket.current_value == Decimal("500")
    assert bucket.returns == Decimal("0")
    assert [p.value for p in bucket.price_history] == [Decimal("500")]
    assert portfolio.total_invested == Decimal("500")
    assert portfolio.current_value == Decimal("500")
    assert portfolio.total_returns == Decimal("0")
    assert portfolio.total_returns_percentage == Decimal("0")
    engine.verify(portfolio)


@pytest.mark.unit
def test_withdrawal_clamps_at_zero(engine):
    portfolio = engine.new_portfolio("u1")
    engine.apply_transaction(portfolio, RequestType.DEPOSIT, PlanName.SILVER, Decimal("300"), NOW)

    bucket = engine.apply_transaction(
        portfolio, RequestType.WITHDRAWAL, PlanName.SILVER, Decimal("1000"), NOW
    )

    assert bucket.invested == Decimal("0")
    assert bucket.current_value == Decimal("0")
    assert [p.value for p in bucket.price_history] == [Decimal("300"), Decimal("0")]
    assert portfolio.total_invested == Decimal("0")
    engine.verify(portfolio)


@pytest.mark.unit
def test_return_rate_bounds_follow_the_catalog(engine):
    portfolio = engine.new_portfolio("u1")
    engine.apply_transaction(
        portfolio, RequestType.DEPOSIT, PlanName.SILVER, Decimal("100"), NOW, plan=_silver("5", "8")
    )
    bucket = engine.apply_transaction(
        portfolio, RequestType.DEPOSIT, PlanName.SILVER, Decimal("100"), NOW, plan=_silver("6", "9")
    )

    assert bucket.return_rate_min == Decimal("6")
    assert bucket.return_rate_max == Decimal("9")


@pytest.mark.unit
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_non_positive_amount_rejected(engine, amount):
    portfolio = engine.new_portfolio("u1")
    with pytest.raises(ValidationError):
        engine.apply_transaction(portfolio, RequestType.DEPOSIT, PlanName.GOLD, amount, NOW)


@pytest.mark.unit
def test_referral_reward_counts_toward_current_value(engine):
    portfolio = engine.new_portfolio("u1")
    engine.apply_transaction(portfolio, RequestType.DEPOSIT, PlanName.GOLD, Decimal("400"), NOW)

    engine.add_referral_reward(portfolio, Decimal("20"), Decimal("400"))

    assert portfolio.referral_rewards == Decimal("20")
    assert portfolio.referral_amount == Decimal("400")
    assert portfolio.current_value == Decimal("420")
    assert portfolio.total_returns == Decimal("20")
    assert portfolio.total_returns_percentage == Decimal("5.000000")
    engine.verify(portfolio)


@pytest.mark.unit
def test_daily_return_formula(engine):
    # 1000 * (3.65 / 365) / 100 = 0.1
    assert engine.daily_return(Decimal("1000"), Decimal("3.65")) == Decimal("0.100000")
    # quantized to six places
    assert engine.daily_return(Decimal("500"), Decimal("10")) == Decimal("0.136986")


@pytest.mark.unit
def test_accrue_only_buckets_with_rate_and_capital(engine):
    portfolio = engine.new_portfolio("u1")
    engine.apply_transaction(portfolio, RequestType.DEPOSIT, PlanName.SILVER, Decimal("1000"), NOW)
    engine.apply_transaction(portfolio, RequestType.DEPOSIT, PlanName.GOLD, Decimal("1000"), NOW)
    engine.set_return_rate(portfolio.bucket(PlanName.SILVER), Decimal("3.65"))
    engine.set_return_rate(portfolio.bucket(PlanName.PLATINUM), Decimal("3.65"))  # no capital

    accrued = engine.accrue_portfolio(portfolio, NOW + timedelta(days=1))

    assert accrued == Decimal("0.100000")
    silver = portfolio.bucket(PlanName.SILVER)
    assert silver.current_value == Decimal("1000.100000")
    assert silver.returns == Decimal("0.100000")
    assert silver.last_accrual_at == NOW + timedelta(days=1)
    assert portfolio.bucket(PlanName.GOLD).current_value == Decimal("1000")
    assert portfolio.bucket(PlanName.PLATINUM).price_history == []
    engine.verify(portfolio)


@pytest.mark.unit
def test_accrue_at_most_once_per_day(engine):
    portfolio = engine.new_portfolio("u1")
    engine.apply_transaction(portfolio, RequestType.DEPOSIT, PlanName.SILVER, Decimal("1000"), NOW)
    engine.set_return_rate(portfolio.bucket(PlanName.SILVER), Decimal("3.65"))

    first = engine.accrue_portfolio(portfolio, NOW)
    second = engine.accrue_portfolio(portfolio, NOW + timedelta(hours=3))
    next_day = engine.accrue_portfolio(portfolio, NOW + timedelta(days=1))

    assert first == Decimal("0.100000")
    assert second == Decimal("0")
    assert next_day > 0


@pytest.mark.unit
def test_negative_rate_rejected(engine):
    portfolio = engine.new_portfolio("u1")
    with pytest.raises(ValidationError):
        engine.set_return_rate(portfolio.bucket(PlanName.SILVER), Decimal("-1"))


@pytest.mark.unit
def test_verify_detects_hand_patched_totals(engine):
    portfolio = engine.new_portfolio("u1")
    engine.apply_transaction(portfolio, RequestType.DEPOSIT, PlanName.SILVER, Decimal("100"), NOW)
    portfolio.total_invested += Decimal("1")

    with pytest.raises(InternalError, match="total_invested"):
        engine.verify(portfolio)


@pytest.mark.unit
def test_plan_rejects_inverted_bounds():
    with pytest.raises(ValidationError):
        Plan(
            name=PlanName.GOLD,
            min_investment=Decimal("500"),
            max_investment=Decimal("201"),
            min_return_rate=None,
            max_return_rate=None,
        )
    with pytest.raises(ValidationError):
        _silver(min_rate="9", max_rate="8")
