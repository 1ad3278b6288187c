"""
Service wiring

Builds every ledger service over one session factory so the API, the
scheduler and tests share the same object graph.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.services.accrual_service import AccrualService
from app.services.approval_orchestrator import ApprovalOrchestrator
from app.services.history_projection import HistoryProjection
from app.services.investment_service import InvestmentService
from app.services.notification_service import NotificationService
from app.services.plan_catalog import PlanCatalog
from app.services.portfolio_ledger import PortfolioLedger
from app.services.portfolio_service import PortfolioService
from app.services.referral_service import ReferralService
from app.services.request_ledger import RequestLedger


@dataclass(frozen=True)
class LedgerServices:
    plans: PlanCatalog
    history: HistoryProjection
    notifications: NotificationService
    orchestrator: ApprovalOrchestrator
    requests: RequestLedger
    investments: InvestmentService
    referrals: ReferralService
    portfolios: PortfolioService
    accrual: AccrualService


def build_services(session_factory: async_sessionmaker) -> LedgerServices:
    ledger = PortfolioLedger()
    notifications = NotificationService(session_factory)
    orchestrator = ApprovalOrchestrator(session_factory, notifications, ledger=ledger)
    return LedgerServices(
        plans=PlanCatalog(session_factory),
        history=HistoryProjection(session_factory),
        notifications=notifications,
        orchestrator=orchestrator,
        requests=RequestLedger(session_factory, orchestrator, notifications),
        investments=InvestmentService(session_factory, orchestrator, notifications),
        referrals=ReferralService(session_factory, orchestrator),
        portfolios=PortfolioService(session_factory, ledger=ledger),
        accrual=AccrualService(session_factory, notifications, ledger=ledger),
    )
