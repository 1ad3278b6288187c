from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.domain.errors import ConcurrentUpdateError, InternalError, NotFoundError, ValidationError
from app.domain.models import PlanName
from app.infrastructure.db.repositories.portfolio_repository import PortfolioRepository

AT = datetime(2030, 1, 15, 0, 5)


@pytest.fixture()
async def funded_user(services, seeded_plans, make_user, submit_and_decide):
    user = await make_user(name="Gina", wallet="TWalletGina")
    await submit_and_decide(user, "1000", plan="platinum")
    return user


@pytest.mark.asyncio
@pytest.mark.integration
async def test_accrual_adds_one_day_of_returns(services, funded_user):
    await services.portfolios.set_plan_return_rate(funded_user.id, "platinum", "3.65")

    report = await services.accrual.run_daily_accrual(at=AT)

    assert report.to_dict() == {"scanned": 1, "updated": 1, "failed": 0}
    portfolio = await services.portfolios.get_portfolio(funded_user.id)
    bucket = portfolio.bucket(PlanName.PLATINUM)
    assert bucket.current_value == Decimal("1000.1")
    assert bucket.invested == Decimal("1000")
    assert bucket.returns == Decimal("0.1")
    assert bucket.last_accrual_at == AT
    assert bucket.price_history[-1].value == Decimal("1000.1")
    assert bucket.price_history[-1].updated_at == AT
    assert portfolio.current_value == Decimal("1000.1")
    assert portfolio.total_returns == Decimal("0.1")
    assert portfolio.total_returns_percentage == Decimal("0.01")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_accrual_runs_once_per_day(services, funded_user):
    await services.portfolios.set_plan_return_rate(funded_user.id, "platinum", "3.65")

    await services.accrual.run_daily_accrual(at=AT)
    again = await services.accrual.run_daily_accrual(at=AT + timedelta(hours=3))
    next_day = await services.accrual.run_daily_accrual(at=AT + timedelta(days=1))

    assert again.updated == 0
    assert next_day.updated == 1
    portfolio = await services.portfolios.get_portfolio(funded_user.id)
    assert portfolio.bucket(PlanName.PLATINUM).current_value == Decimal("1000.2")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_accrual_skips_portfolios_without_rate(services, funded_user):
    report = await services.accrual.run_daily_accrual(at=AT)

    assert report.scanned == 0
    portfolio = await services.portfolios.get_portfolio(funded_user.id)
    assert portfolio.current_value == Decimal("1000")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cleared_rate_stops_accrual(services, funded_user):
    await services.portfolios.set_plan_return_rate(funded_user.id, "platinum", "3.65")
    await services.portfolios.set_plan_return_rate(funded_user.id, "platinum", None)

    report = await services.accrual.run_daily_accrual(at=AT)

    assert report.scanned == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_one_failing_portfolio_does_not_stop_the_scan(
    services, funded_user, make_user, submit_and_decide, monkeypatch
):
    other = await make_user(name="Hal", wallet="TWalletHal")
    await submit_and_decide(other, "500", plan="gold")
    await services.portfolios.set_plan_return_rate(funded_user.id, "platinum", "3.65")
    await services.portfolios.set_plan_return_rate(other.id, "gold", "10")

    ledger = services.accrual.ledger
    real_accrue = ledger.accrue

    async def broken_for_gina(session, user_id, at):
        if user_id == funded_user.id:
            raise InternalError("corrupt bucket")
        return await real_accrue(session, user_id, at)

    monkeypatch.setattr(ledger, "accrue", broken_for_gina)

    report = await services.accrual.run_daily_accrual(at=AT)

    assert report.scanned == 2
    assert report.updated == 1
    assert report.failed == 1
    assert report.failed_users == [funded_user.id]
    portfolio = await services.portfolios.get_portfolio(other.id)
    assert portfolio.bucket(PlanName.GOLD).current_value == Decimal("500.136986")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_accrual_notifies_owner(services, funded_user):
    await services.portfolios.set_plan_return_rate(funded_user.id, "platinum", "3.65")
    await services.accrual.run_daily_accrual(at=AT)

    page = await services.notifications.list_for_user(funded_user.id)
    assert any("daily returns" in n.message for n in page.items)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_set_return_rate_validation(services, funded_user):
    with pytest.raises(ValidationError):
        await services.portfolios.set_plan_return_rate(funded_user.id, "platinum", "-1")
    with pytest.raises(ValidationError):
        await services.portfolios.set_plan_return_rate(funded_user.id, "diamond", "1")
    with pytest.raises(NotFoundError):
        await services.portfolios.set_plan_return_rate("ghost", "gold", "1")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_set_return_rate_creates_portfolio(services, seeded_plans, make_user):
    user = await make_user(name="Ivy", wallet="TWalletIvy")

    portfolio = await services.portfolios.set_plan_return_rate(user.id, "gold", "12")

    assert portfolio.bucket(PlanName.GOLD).admin_return_rate == Decimal("12")
    assert portfolio.total_invested == Decimal("0")
    assert [b.name for b in portfolio.plans] == list(PlanName)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_lost_version_check_retries_accrual_once(services, funded_user, monkeypatch):
    await services.portfolios.set_plan_return_rate(funded_user.id, "platinum", "3.65")
    before = await services.portfolios.get_portfolio(funded_user.id)
    points_before = len(before.bucket(PlanName.PLATINUM).price_history)

    real_save = PortfolioRepository.save
    calls = {"n": 0}

    async def flaky_save(self, portfolio):
        calls["n"] += 1
        if calls["n"] == 1:
            raise ConcurrentUpdateError("simulated concurrent writer")
        return await real_save(self, portfolio)

    monkeypatch.setattr(PortfolioRepository, "save", flaky_save)

    report = await services.accrual.run_daily_accrual(at=AT)

    assert report.to_dict() == {"scanned": 1, "updated": 1, "failed": 0}
    assert calls["n"] == 2
    portfolio = await services.portfolios.get_portfolio(funded_user.id)
    bucket = portfolio.bucket(PlanName.PLATINUM)
    assert bucket.current_value == Decimal("1000.1")
    assert bucket.returns == Decimal("0.1")
    assert len(bucket.price_history) == points_before + 1
    assert portfolio.version == before.version + 1
