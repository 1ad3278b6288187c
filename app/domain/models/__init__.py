"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    Decision,
    HistoryType,
    NotificationAudience,
    PlanName,
    RequestStatus,
    RequestType,
    VerificationStatus,

    # Entities
    HistoryEntry,
    InvestmentRequest,
    Notification,
    Page,
    Plan,
    PlanBucket,
    Portfolio,
    PricePoint,
    Referral,
    ReferralTransaction,
    TransactionRequest,
    User,
)

__all__ = [
    # Enums
    "Decision",
    "HistoryType",
    "NotificationAudience",
    "PlanName",
    "RequestStatus",
    "RequestType",
    "VerificationStatus",

    # Entities
    "HistoryEntry",
    "InvestmentRequest",
    "Notification",
    "Page",
    "Plan",
    "PlanBucket",
    "Portfolio",
    "PricePoint",
    "Referral",
    "ReferralTransaction",
    "TransactionRequest",
    "User",
]
