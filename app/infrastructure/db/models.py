"""
Database Models (SQLAlchemy ORM)
Requests are facts with a mutable status; price history is insert-only
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime,
    Boolean, ForeignKey, Text, Enum as SQLEnum, Index, JSON, UniqueConstraint
)
import enum
import uuid

from app.infrastructure.db.database import Base
from app.utils.time import now_utc_naive


def _uuid() -> str:
    return str(uuid.uuid4())


MONEY = Numeric(18, 6)
RATE = Numeric(10, 4)


# Enums
class PlanNameEnum(str, enum.Enum):
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class RequestTypeEnum(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class HistoryTypeEnum(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INVESTMENT = "investment"


class RequestStatusEnum(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationStatusEnum(str, enum.Enum):
    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


def _enum(enum_cls, name: str):
    # Persist enum values ("silver"), not member names ("SILVER")
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


# Tables

class PlanModel(Base):
    """Plan catalog entry"""
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(_enum(PlanNameEnum, "plan_name"), nullable=False, unique=True, index=True)
    min_investment = Column(MONEY, nullable=True)
    max_investment = Column(MONEY, nullable=True)
    min_return_rate = Column(RATE, nullable=True)
    max_return_rate = Column(RATE, nullable=True)
    features = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive)


class UserModel(Base):
    """User directory (owned by the auth service; read here)"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_status = Column(
        _enum(VerificationStatusEnum, "verification_status"),
        nullable=False,
        default=VerificationStatusEnum.UNVERIFIED,
    )
    trust_wallet_address = Column(String(128), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)


class TransactionRequestModel(Base):
    """Deposit / withdrawal request"""
    __tablename__ = "requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    type = Column(_enum(RequestTypeEnum, "request_type"), nullable=False)
    plan = Column(_enum(PlanNameEnum, "plan_name"), nullable=False)
    wallet_address = Column(String(128), nullable=False)
    wallet_tx_id = Column(String(256), nullable=True)
    transaction_image = Column(Text, nullable=True)
    status = Column(
        _enum(RequestStatusEnum, "request_status"),
        nullable=False,
        default=RequestStatusEnum.PENDING,
    )
    rejection_reason = Column(Text, nullable=True)
    decided_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        Index("ix_requests_status_created", "status", "created_at"),
        Index("ix_requests_user_created", "user_id", "created_at"),
    )


class InvestRequestModel(Base):
    """Investment request (status-only approval)"""
    __tablename__ = "investment_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    plan = Column(_enum(PlanNameEnum, "plan_name"), nullable=False)
    wallet_address = Column(String(128), nullable=False)
    note = Column(Text, nullable=True)
    status = Column(
        _enum(RequestStatusEnum, "request_status"),
        nullable=False,
        default=RequestStatusEnum.PENDING,
    )
    rejection_reason = Column(Text, nullable=True)
    decided_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        Index("ix_investment_requests_status_created", "status", "created_at"),
    )


class PortfolioModel(Base):
    """Per-user portfolio aggregate"""
    __tablename__ = "portfolios"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True, index=True)
    total_invested = Column(MONEY, nullable=False, default=0)
    current_value = Column(MONEY, nullable=False, default=0)
    total_returns = Column(MONEY, nullable=False, default=0)
    total_returns_percentage = Column(MONEY, nullable=False, default=0)
    referral_rewards = Column(MONEY, nullable=False, default=0)
    referral_amount = Column(MONEY, nullable=False, default=0)
    # Optimistic concurrency guard; bumped by every write
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive)


class PortfolioPlanModel(Base):
    """Per-plan bucket"""
    __tablename__ = "portfolio_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    portfolio_id = Column(String(36), ForeignKey("portfolios.id"), nullable=False)
    plan_name = Column(_enum(PlanNameEnum, "plan_name"), nullable=False)
    invested = Column(MONEY, nullable=False, default=0)
    current_value = Column(MONEY, nullable=False, default=0)
    returns = Column(MONEY, nullable=False, default=0)
    return_rate_min = Column(RATE, nullable=True)
    return_rate_max = Column(RATE, nullable=True)
    admin_return_rate = Column(RATE, nullable=True)
    last_accrual_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("portfolio_id", "plan_name", name="uq_portfolio_plans_portfolio_plan"),
        Index("ix_portfolio_plans_admin_rate", "admin_return_rate"),
    )


class PriceHistoryModel(Base):
    """Bucket value history - AUDIT RECORD, insert-only"""
    __tablename__ = "portfolio_price_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    portfolio_plan_id = Column(Integer, ForeignKey("portfolio_plans.id"), nullable=False, index=True)
    value = Column(MONEY, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive)


class TransactionHistoryModel(Base):
    """History projection mirroring request status"""
    __tablename__ = "transaction_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    type = Column(_enum(HistoryTypeEnum, "history_type"), nullable=False)
    status = Column(
        _enum(RequestStatusEnum, "request_status"),
        nullable=False,
        default=RequestStatusEnum.PENDING,
    )
    # Points at requests.id or investment_requests.id depending on type
    txn_req_id = Column(String(36), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        Index("ix_transaction_history_status_created", "status", "created_at"),
        Index("ix_transaction_history_user_created", "user_id", "created_at"),
    )


class ReferralModel(Base):
    """Referrer → referred link"""
    __tablename__ = "referrals"

    id = Column(String(36), primary_key=True, default=_uuid)
    referrer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    referred_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True)
    reward_expires_at = Column(DateTime, nullable=False)
    reward_claimed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)


class ReferralTransactionModel(Base):
    """Referral reward awaiting approval"""
    __tablename__ = "referral_transactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    referrer_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    referred_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    referred_plan = Column(_enum(PlanNameEnum, "plan_name"), nullable=False)
    referred_deposit_amount = Column(MONEY, nullable=False)
    reward_amount = Column(MONEY, nullable=False)
    status = Column(
        _enum(RequestStatusEnum, "request_status"),
        nullable=False,
        default=RequestStatusEnum.PENDING,
    )
    rejection_reason = Column(Text, nullable=True)
    approved_by = Column(String(100), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    transaction_request_id = Column(String(36), ForeignKey("requests.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        Index("ix_referral_transactions_referrer_status", "referrer_id", "status"),
        Index("ix_referral_transactions_status_created", "status", "created_at"),
    )


class NotificationModel(Base):
    """User / admin inbox"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    audience = Column(String(10), nullable=False, default="user")
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    title = Column(String(200), nullable=True)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
