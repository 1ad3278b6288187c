"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from app.domain.errors import ValidationError


class PlanName(str, Enum):
    """Subscription tier"""
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class RequestType(str, Enum):
    """Transaction request type"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class HistoryType(str, Enum):
    """History projection entry type"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INVESTMENT = "investment"


class RequestStatus(str, Enum):
    """Approval status shared by every request kind"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, Enum):
    """Admin decision on a pending request"""
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def status(self) -> RequestStatus:
        return RequestStatus.APPROVED if self is Decision.APPROVE else RequestStatus.REJECTED


class VerificationStatus(str, Enum):
    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class NotificationAudience(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Plan:
    """Plan catalog entry - Immutable"""
    name: PlanName
    min_investment: Optional[Decimal]
    max_investment: Optional[Decimal]
    min_return_rate: Optional[Decimal]
    max_return_rate: Optional[Decimal]
    features: List[str] = field(default_factory=list)
    is_active: bool = True
    description: Optional[str] = None

    def __post_init__(self):
        if (
            self.min_investment is not None
            and self.max_investment is not None
            and self.min_investment > self.max_investment
        ):
            raise ValidationError(
                f"{self.name.value}: min_investment must not exceed max_investment"
            )
        if (
            self.min_return_rate is not None
            and self.max_return_rate is not None
            and self.min_return_rate > self.max_return_rate
        ):
            raise ValidationError(
                f"{self.name.value}: min_return_rate must not exceed max_return_rate"
            )


@dataclass(frozen=True)
class User:
    """The slice of the user directory the ledger consumes"""
    id: str
    name: str
    email: str
    is_verified: bool
    verification_status: VerificationStatus
    trust_wallet_address: Optional[str] = None

    @property
    def can_transact(self) -> bool:
        return self.is_verified and self.verification_status == VerificationStatus.VERIFIED


@dataclass(frozen=True)
class TransactionRequest:
    """Deposit or withdrawal request awaiting an admin decision"""
    id: str
    user_id: str
    amount: Decimal
    type: RequestType
    plan: PlanName
    wallet_address: str
    wallet_tx_id: Optional[str]
    transaction_image: Optional[str]
    status: RequestStatus
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime
    decided_at: Optional[datetime] = None


@dataclass(frozen=True)
class InvestmentRequest:
    """Investment instruction; approval is status-only"""
    id: str
    user_id: str
    amount: Decimal
    plan: PlanName
    wallet_address: str
    note: Optional[str]
    status: RequestStatus
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime
    decided_at: Optional[datetime] = None


@dataclass(frozen=True)
class HistoryEntry:
    """Transaction history projection row"""
    id: str
    user_id: str
    amount: Decimal
    type: HistoryType
    status: RequestStatus
    txn_req_id: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class PricePoint:
    """Bucket value at a point in time - append-only"""
    value: Decimal
    updated_at: datetime


@dataclass
class PlanBucket:
    """Per-plan sub-ledger inside a portfolio"""
    name: PlanName
    id: Optional[int] = None
    invested: Decimal = Decimal("0")
    current_value: Decimal = Decimal("0")
    returns: Decimal = Decimal("0")
    return_rate_min: Optional[Decimal] = None
    return_rate_max: Optional[Decimal] = None
    admin_return_rate: Optional[Decimal] = None
    last_accrual_at: Optional[datetime] = None
    price_history: List[PricePoint] = field(default_factory=list)
    # Points appended since the bucket was loaded; persisted on save
    pending_points: List[PricePoint] = field(default_factory=list)

    def record_price(self, at: datetime) -> PricePoint:
        point = PricePoint(value=self.current_value, updated_at=at)
        self.price_history.append(point)
        self.pending_points.append(point)
        return point


@dataclass
class Portfolio:
    """Per-user aggregate over plan buckets"""
    user_id: str
    plans: List[PlanBucket]
    id: Optional[str] = None
    total_invested: Decimal = Decimal("0")
    current_value: Decimal = Decimal("0")
    total_returns: Decimal = Decimal("0")
    total_returns_percentage: Decimal = Decimal("0")
    referral_rewards: Decimal = Decimal("0")
    referral_amount: Decimal = Decimal("0")
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def bucket(self, name: PlanName) -> PlanBucket:
        for bucket in self.plans:
            if bucket.name == name:
                return bucket
        bucket = PlanBucket(name=name)
        self.plans.append(bucket)
        return bucket

    @property
    def is_new(self) -> bool:
        return self.id is None


@dataclass(frozen=True)
class Referral:
    id: str
    referrer_id: str
    referred_id: str
    reward_expires_at: datetime
    reward_claimed: bool
    created_at: datetime


@dataclass(frozen=True)
class ReferralTransaction:
    """Referral reward awaiting admin decision"""
    id: str
    referrer_id: str
    referred_id: str
    referred_plan: PlanName
    referred_deposit_amount: Decimal
    reward_amount: Decimal
    status: RequestStatus
    transaction_request_id: str
    rejection_reason: Optional[str]
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class Notification:
    id: int
    audience: NotificationAudience
    user_id: Optional[str]
    title: Optional[str]
    message: str
    read: bool
    created_at: datetime


T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a filtered listing"""
    items: List[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1
