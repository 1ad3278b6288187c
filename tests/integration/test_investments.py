from datetime import date
from decimal import Decimal

import pytest

from app.domain.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from app.domain.models import HistoryType, RequestStatus


@pytest.mark.asyncio
@pytest.mark.integration
async def test_investment_approval_is_status_only(services, seeded_plans, make_user):
    user = await make_user()
    request = await services.investments.submit_investment(
        user.id, "300", "gold", user.trust_wallet_address, note="first tranche"
    )

    decided = await services.investments.decide_investment(request.id, "approve")

    assert decided.status == RequestStatus.APPROVED
    assert decided.decided_at is not None
    with pytest.raises(NotFoundError):
        await services.portfolios.get_portfolio(user.id)

    history = await services.history.get_for_request(request.id)
    assert history.type == HistoryType.INVESTMENT
    assert history.status == RequestStatus.APPROVED
    assert history.amount == Decimal("300")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_investment_decided_once(services, seeded_plans, make_user):
    user = await make_user()
    request = await services.investments.submit_investment(user.id, "300", "gold", user.trust_wallet_address)
    await services.investments.decide_investment(request.id, "reject", "plan closed")

    with pytest.raises(InvalidStateError):
        await services.investments.decide_investment(request.id, "approve")

    stored = await services.investments.get_investment(request.id)
    assert stored.status == RequestStatus.REJECTED
    assert stored.rejection_reason == "plan closed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_investment_requires_registered_wallet(services, seeded_plans, make_user):
    no_wallet = await make_user(wallet=None)
    with pytest.raises(ForbiddenError):
        await services.investments.submit_investment(no_wallet.id, "300", "gold", "TWalletAny")

    user = await make_user(name="Erin", wallet="TWalletErin")
    with pytest.raises(ForbiddenError):
        await services.investments.submit_investment(user.id, "300", "gold", "TWalletSomeoneElse")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_investments_filters(services, seeded_plans, make_user):
    user = await make_user(name="Frank", wallet="TWalletFrank")
    first = await services.investments.submit_investment(user.id, "100", "silver", "TWalletFrank")
    await services.investments.submit_investment(user.id, "600", "platinum", "TWalletFrank")
    await services.investments.decide_investment(first.id, "approve")

    approved = await services.investments.list_investments(status=RequestStatus.APPROVED)
    assert [r.id for r in approved.items] == [first.id]

    found = await services.investments.list_investments(search="frank")
    assert found.total == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_investments_rejects_inverted_date_range(services, seeded_plans):
    with pytest.raises(ValidationError):
        await services.investments.list_investments(start=date(2030, 2, 1), end=date(2030, 1, 1))
