from datetime import timedelta
from decimal import Decimal

import pytest

from app.domain.errors import NotFoundError, ValidationError
from app.domain.models import HistoryType, RequestStatus
from app.utils.time import now_utc_naive


@pytest.fixture()
async def mixed_history(services, seeded_plans, make_user, submit_and_decide):
    user = await make_user(name="Max", wallet="TWalletMax")
    await submit_and_decide(user, "100")
    await submit_and_decide(user, "40", request_type="withdrawal")
    await submit_and_decide(user, "75", decision="reject", reason="blurry proof")
    await submit_and_decide(user, "300", plan="gold", decision=None)
    return user


@pytest.mark.asyncio
@pytest.mark.integration
async def test_user_history_filters(services, mixed_history):
    everything = await services.history.list_for_user(mixed_history.id)
    assert everything.total == 4

    approved = await services.history.list_for_user(mixed_history.id, status=RequestStatus.APPROVED)
    assert sorted(e.amount for e in approved.items) == [Decimal("40"), Decimal("100")]

    withdrawals = await services.history.list_for_user(mixed_history.id, entry_type=HistoryType.WITHDRAWAL)
    assert [e.amount for e in withdrawals.items] == [Decimal("40")]

    mid = await services.history.list_for_user(
        mixed_history.id, min_amount=Decimal("50"), max_amount=Decimal("150")
    )
    assert sorted(e.amount for e in mid.items) == [Decimal("75"), Decimal("100")]

    by_amount = await services.history.list_for_user(mixed_history.id, sort_by="amount", sort_order="asc")
    assert [e.amount for e in by_amount.items] == [
        Decimal("40"), Decimal("75"), Decimal("100"), Decimal("300")
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_user_history_by_date(services, mixed_history):
    today = now_utc_naive().date()

    todays = await services.history.list_for_user(mixed_history.id, on_date=today)
    yesterdays = await services.history.list_for_user(mixed_history.id, on_date=today - timedelta(days=1))

    assert todays.total == 4
    assert yesterdays.total == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_history_range(services, mixed_history):
    today = now_utc_naive().date()

    page = await services.history.list(start=today, end=today, status=RequestStatus.PENDING)
    assert [e.amount for e in page.items] == [Decimal("300")]

    future = await services.history.list(start=today + timedelta(days=1))
    assert future.total == 0

    with pytest.raises(ValidationError):
        await services.history.list(start=today, end=today - timedelta(days=1))


@pytest.mark.asyncio
@pytest.mark.integration
async def test_history_lookup(services, mixed_history):
    page = await services.history.list_for_user(mixed_history.id, limit=1)
    entry = await services.history.get(page.items[0].id)

    assert entry.user_id == mixed_history.id
    with pytest.raises(NotFoundError):
        await services.history.get("missing")
    with pytest.raises(ValidationError):
        await services.history.list_for_user(
            mixed_history.id, min_amount=Decimal("10"), max_amount=Decimal("5")
        )
