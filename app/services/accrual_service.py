"""
ACCRUAL SERVICE

Daily return accrual over every bucket carrying an admin-assigned rate.

Each portfolio is accrued in its own unit of work through PortfolioLedger,
so a concurrent approval on the same portfolio either serializes with it
or forces a retry. One failing portfolio never stops the scan.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.domain.errors import LedgerError
from app.infrastructure.db.repositories.portfolio_repository import PortfolioRepository
from app.services.notification_service import NotificationService
from app.services.portfolio_ledger import PortfolioLedger
from app.services.unit_of_work import run_with_retry
from app.utils.time import now_utc_naive

logger = logging.getLogger(__name__)


@dataclass
class AccrualReport:
    scanned: int = 0
    updated: int = 0
    failed: int = 0
    failed_users: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"scanned": self.scanned, "updated": self.updated, "failed": self.failed}


class AccrualService:

    def __init__(
        self,
        session_factory: async_sessionmaker,
        notifications: NotificationService,
        ledger: Optional[PortfolioLedger] = None,
        max_retries: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.notifications = notifications
        self.ledger = ledger or PortfolioLedger()
        self.max_retries = max_retries if max_retries is not None else settings.DECISION_MAX_RETRIES

    async def run_daily_accrual(self, at: Optional[datetime] = None) -> AccrualReport:
        at = at or now_utc_naive()
        report = AccrualReport()

        async with self.session_factory() as session:
            user_ids = await PortfolioRepository(session).list_user_ids_with_accrual_rate()

        logger.info("Daily accrual started: %d portfolios with an admin rate", len(user_ids))

        for user_id in user_ids:
            report.scanned += 1
            try:
                accrued = await self._accrue_one(user_id, at)
            except LedgerError as exc:
                report.failed += 1
                report.failed_users.append(user_id)
                logger.error("Accrual failed for user %s: %s", user_id, exc.message)
                continue
            except Exception:
                report.failed += 1
                report.failed_users.append(user_id)
                logger.exception("Unexpected accrual failure for user %s", user_id)
                continue

            if accrued > 0:
                report.updated += 1
                await self._notify(user_id, accrued)

        logger.info(
            "Daily accrual finished: scanned=%d updated=%d failed=%d",
            report.scanned, report.updated, report.failed,
        )
        return report

    async def _accrue_one(self, user_id: str, at: datetime):
        async def _work(session: AsyncSession):
            return await self.ledger.accrue(session, user_id, at)

        return await run_with_retry(
            self.session_factory, _work, self.max_retries, f"accrue {user_id}"
        )

    async def _notify(self, user_id: str, accrued) -> None:
        try:
            await self.notifications.notify(
                user_id,
                f"Your portfolio earned {accrued} in daily returns.",
                title="Portfolio Update",
            )
        except Exception:
            logger.exception("Failed to notify user %s about accrual", user_id)
