"""
PORTFOLIO ENGINE

Pure bucket arithmetic for the portfolio aggregate.

RULES:
- Buckets are the source of truth; portfolio totals are always
  recomputed from the full bucket array, never patched with deltas
- invested / current_value never go below zero
- Every value change on a bucket appends a price point
- No database access, no notifications
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Optional

from app.domain.errors import InternalError, ValidationError
from app.domain.models import (
    Plan,
    PlanBucket,
    PlanName,
    Portfolio,
    RequestType,
)

MONEY_QUANTUM = Decimal("0.000001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
DAYS_PER_YEAR = Decimal("365")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)


class PortfolioEngine:
    """
    Applies ledger effects to a portfolio and keeps its aggregates derived.
    """

    def new_portfolio(self, user_id: str) -> Portfolio:
        """Fresh portfolio with every tier pre-seeded at zero"""
        return Portfolio(
            user_id=user_id,
            plans=[PlanBucket(name=name) for name in PlanName],
        )

    # ------------------------------------------------------------------
    # Bucket mutations
    # ------------------------------------------------------------------

    def apply_deposit(self, bucket: PlanBucket, amount: Decimal, at: datetime) -> None:
        self._require_positive(amount)
        bucket.invested += amount
        bucket.current_value += amount
        bucket.record_price(at)
        self._refresh_returns(bucket)

    def apply_withdrawal(self, bucket: PlanBucket, amount: Decimal, at: datetime) -> None:
        self._require_positive(amount)
        bucket.invested = max(ZERO, bucket.invested - amount)
        bucket.current_value = max(ZERO, bucket.current_value - amount)
        bucket.record_price(at)
        self._refresh_returns(bucket)

    def apply_transaction(
        self,
        portfolio: Portfolio,
        request_type: RequestType,
        plan_name: PlanName,
        amount: Decimal,
        at: datetime,
        plan: Optional[Plan] = None,
    ) -> PlanBucket:
        """
        Apply an approved deposit/withdrawal to its bucket, re-sync the
        bucket's return-rate bounds from the catalog and recompute totals.
        """
        bucket = portfolio.bucket(plan_name)
        if request_type == RequestType.DEPOSIT:
            self.apply_deposit(bucket, amount, at)
        elif request_type == RequestType.WITHDRAWAL:
            self.apply_withdrawal(bucket, amount, at)
        else:
            raise ValidationError(f"Unsupported request type: {request_type}")

        if plan is not None:
            self.sync_return_rate(bucket, plan)

        self.recompute(portfolio)
        return bucket

    def sync_return_rate(self, bucket: PlanBucket, plan: Plan) -> None:
        """Copy the catalog's current bounds onto the bucket"""
        bucket.return_rate_min = plan.min_return_rate
        bucket.return_rate_max = plan.max_return_rate

    def set_return_rate(self, bucket: PlanBucket, annual_rate: Optional[Decimal]) -> None:
        """Assign (or clear with None) the admin rate used by daily accrual"""
        if annual_rate is not None and annual_rate < 0:
            raise ValidationError("Return rate must be >= 0")
        bucket.admin_return_rate = annual_rate

    def daily_return(self, invested: Decimal, annual_rate: Decimal) -> Decimal:
        """invested × (annual_rate / 365) / 100, quantized to the money quantum"""
        return quantize(invested * (annual_rate / DAYS_PER_YEAR) / HUNDRED)

    def accrue(self, bucket: PlanBucket, at: datetime) -> Optional[Decimal]:
        """
        Add one day of return at the admin-assigned rate.

        Returns:
            Amount accrued, or None if the bucket is not eligible
        """
        rate = bucket.admin_return_rate
        if rate is None or rate <= 0 or bucket.invested <= 0:
            return None
        # At most one accrual per bucket per calendar day
        if bucket.last_accrual_at is not None and bucket.last_accrual_at.date() >= at.date():
            return None

        amount = self.daily_return(bucket.invested, rate)
        bucket.current_value += amount
        bucket.last_accrual_at = at
        bucket.record_price(at)
        self._refresh_returns(bucket)
        return amount

    def accrue_portfolio(self, portfolio: Portfolio, at: datetime) -> Decimal:
        """Accrue every eligible bucket; returns the total added"""
        total = ZERO
        for bucket in portfolio.plans:
            accrued = self.accrue(bucket, at)
            if accrued is not None:
                total += accrued
        self.recompute(portfolio)
        return total

    def add_referral_reward(
        self,
        portfolio: Portfolio,
        reward_amount: Decimal,
        referred_deposit_amount: Decimal,
    ) -> None:
        if reward_amount < 0:
            raise ValidationError("Reward amount must be non-negative")
        portfolio.referral_rewards += reward_amount
        portfolio.referral_amount += referred_deposit_amount
        self.recompute(portfolio)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def recompute(self, portfolio: Portfolio) -> Portfolio:
        """Derive every portfolio-level figure from the bucket array"""
        for bucket in portfolio.plans:
            self._refresh_returns(bucket)

        portfolio.total_invested = sum((b.invested for b in portfolio.plans), ZERO)
        portfolio.current_value = (
            sum((b.current_value for b in portfolio.plans), ZERO)
            + portfolio.referral_rewards
        )
        portfolio.total_returns = portfolio.current_value - portfolio.total_invested
        portfolio.total_returns_percentage = self.returns_percentage(
            portfolio.total_returns, portfolio.total_invested
        )
        return portfolio

    @staticmethod
    def returns_percentage(total_returns: Decimal, total_invested: Decimal) -> Decimal:
        if total_invested <= 0:
            return ZERO
        return quantize(total_returns / total_invested * HUNDRED)

    def verify(self, portfolio: Portfolio) -> None:
        """
        Check the aggregate invariants.

        Raises:
            InternalError: if any invariant is violated
        """
        problems = []
        for bucket in portfolio.plans:
            if bucket.invested < 0 or bucket.current_value < 0:
                problems.append(f"{bucket.name.value}: negative balance")
            if bucket.returns != bucket.current_value - bucket.invested:
                problems.append(f"{bucket.name.value}: returns out of sync")

        invested = sum((b.invested for b in portfolio.plans), ZERO)
        value = sum((b.current_value for b in portfolio.plans), ZERO) + portfolio.referral_rewards
        if portfolio.total_invested != invested:
            problems.append("total_invested != sum(plans.invested)")
        if portfolio.current_value != value:
            problems.append("current_value != sum(plans.current_value) + referral_rewards")
        if portfolio.total_returns != portfolio.current_value - portfolio.total_invested:
            problems.append("total_returns != current_value - total_invested")
        expected_pct = self.returns_percentage(portfolio.total_returns, portfolio.total_invested)
        if portfolio.total_returns_percentage != expected_pct:
            problems.append("total_returns_percentage out of sync")

        if problems:
            raise InternalError(
                f"Portfolio invariants violated for user {portfolio.user_id}: "
                + "; ".join(problems)
            )

    # ------------------------------------------------------------------

    @staticmethod
    def _refresh_returns(bucket: PlanBucket) -> None:
        bucket.returns = bucket.current_value - bucket.invested

    @staticmethod
    def _require_positive(amount: Decimal) -> None:
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0")
