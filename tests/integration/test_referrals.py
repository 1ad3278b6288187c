from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from app.domain.errors import InvalidStateError, NotFoundError, ValidationError
from app.domain.models import RequestStatus
from app.infrastructure.db.models import ReferralModel
from app.utils.time import now_utc_naive


@pytest.fixture()
async def referral_setup(services, seeded_plans, make_user, submit_and_decide):
    referrer = await make_user(name="Rita", wallet="TWalletRita")
    referred = await make_user(name="Sam", wallet="TWalletSam")
    await submit_and_decide(referrer, "200")
    await services.referrals.register_referral(referrer.id, referred.id)
    deposit = await submit_and_decide(referred, "400", plan="gold")
    return referrer, referred, deposit


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reward_approval_credits_referrer(services, referral_setup):
    referrer, referred, deposit = referral_setup
    reward = await services.referrals.create_reward(referred.id, deposit.id, "20")

    decided = await services.referrals.decide_reward(
        reward.id, "approve", approved_by="ops-admin", percentage=Decimal("5")
    )

    assert decided.status == RequestStatus.APPROVED
    assert decided.approved_by == "ops-admin"
    assert decided.approved_at is not None

    portfolio = await services.portfolios.get_portfolio(referrer.id)
    assert portfolio.referral_rewards == Decimal("20")
    assert portfolio.referral_amount == Decimal("400")
    assert portfolio.total_invested == Decimal("200")
    assert portfolio.current_value == Decimal("220")
    assert portfolio.total_returns == Decimal("20")
    assert portfolio.total_returns_percentage == Decimal("10")

    referrals = await services.referrals.list_referrals(referrer.id)
    assert referrals[0].reward_claimed is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reward_must_match_percentage(services, referral_setup):
    referrer, referred, deposit = referral_setup
    reward = await services.referrals.create_reward(referred.id, deposit.id, "25")

    with pytest.raises(ValidationError):
        await services.referrals.decide_reward(
            reward.id, "approve", approved_by="ops-admin", percentage=Decimal("5")
        )

    stored = await services.referrals.list_rewards(status=RequestStatus.PENDING)
    assert [r.id for r in stored.items] == [reward.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_claimed_referral_cannot_be_rewarded_again(services, referral_setup):
    referrer, referred, deposit = referral_setup
    first = await services.referrals.create_reward(referred.id, deposit.id, "20")
    second = await services.referrals.create_reward(referred.id, deposit.id, "20")
    await services.referrals.decide_reward(first.id, "approve", approved_by="ops-admin")

    with pytest.raises(InvalidStateError):
        await services.referrals.decide_reward(second.id, "approve", approved_by="ops-admin")
    with pytest.raises(InvalidStateError):
        await services.referrals.create_reward(referred.id, deposit.id, "20")

    portfolio = await services.portfolios.get_portfolio(referrer.id)
    assert portfolio.referral_rewards == Decimal("20")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rejected_reward_leaves_portfolio_alone(services, referral_setup):
    referrer, referred, deposit = referral_setup
    reward = await services.referrals.create_reward(referred.id, deposit.id, "20")

    decided = await services.referrals.decide_reward(
        reward.id, "reject", approved_by="ops-admin", rejection_reason="duplicate account"
    )

    assert decided.status == RequestStatus.REJECTED
    portfolio = await services.portfolios.get_portfolio(referrer.id)
    assert portfolio.referral_rewards == Decimal("0")
    page = await services.referrals.list_rewards_for_user(referrer.id, status=RequestStatus.REJECTED)
    assert page.total == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expired_referral_cannot_be_rewarded(services, referral_setup, db_session):
    referrer, referred, deposit = referral_setup
    reward = await services.referrals.create_reward(referred.id, deposit.id, "20")
    await db_session.execute(
        update(ReferralModel)
        .where(ReferralModel.referred_id == referred.id)
        .values(reward_expires_at=now_utc_naive() - timedelta(days=1))
    )
    await db_session.commit()

    with pytest.raises(ValidationError):
        await services.referrals.decide_reward(reward.id, "approve", approved_by="ops-admin")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reward_requires_approved_deposit_of_referred_user(
    services, referral_setup, submit_and_decide
):
    referrer, referred, _ = referral_setup
    pending = await submit_and_decide(referred, "100", decision=None)

    with pytest.raises(ValidationError):
        await services.referrals.create_reward(referred.id, pending.id, "5")

    with pytest.raises(NotFoundError):
        await services.referrals.create_reward(referrer.id, pending.id, "5")


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("reward_amount", ["0.0000001", "20.0000004", "1000000000000"])
async def test_reward_amount_must_fit_money_columns(services, referral_setup, reward_amount):
    _, referred, deposit = referral_setup

    with pytest.raises(ValidationError):
        await services.referrals.create_reward(referred.id, deposit.id, reward_amount)

    page = await services.referrals.list_rewards(status=RequestStatus.PENDING)
    assert page.total == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_register_referral_rules(services, seeded_plans, make_user):
    a = await make_user(name="Ann")
    b = await make_user(name="Ben")

    with pytest.raises(ValidationError):
        await services.referrals.register_referral(a.id, a.id)
    with pytest.raises(NotFoundError):
        await services.referrals.register_referral(a.id, "ghost")

    referral = await services.referrals.register_referral(a.id, b.id)
    assert referral.reward_expires_at > now_utc_naive() + timedelta(days=29)

    with pytest.raises(ValidationError):
        await services.referrals.register_referral(a.id, b.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_referenced_request_cannot_be_deleted(services, referral_setup):
    _, referred, deposit = referral_setup
    await services.referrals.create_reward(referred.id, deposit.id, "20")

    with pytest.raises(ValidationError):
        await services.requests.delete(deposit.id)
