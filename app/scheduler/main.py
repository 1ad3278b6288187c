"""
Scheduler
Daily return accrual on a cron trigger
"""

import logging
from typing import Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.services.accrual_service import AccrualReport, AccrualService

logger = logging.getLogger(__name__)

ACCRUAL_JOB_ID = "daily_return_accrual"


class PortfolioScheduler:
    """
    Portfolio scheduler
    Runs the daily accrual pass at ACCRUAL_HOUR:ACCRUAL_MINUTE in TIMEZONE
    """

    def __init__(self, accrual: AccrualService, timezone: Optional[str] = None):
        self.accrual = accrual
        self.timezone = pytz.timezone(timezone or settings.TIMEZONE)
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)

    async def daily_accrual_job(self) -> Optional[AccrualReport]:
        logger.info("🔄 Starting daily accrual job...")
        try:
            report = await self.accrual.run_daily_accrual()
        except Exception:
            logger.exception("❌ Daily accrual job failed")
            return None
        logger.info("✅ Daily accrual job complete: %s", report.to_dict())
        return report

    def setup_jobs(self) -> None:
        self.scheduler.add_job(
            self.daily_accrual_job,
            CronTrigger(
                hour=settings.ACCRUAL_HOUR,
                minute=settings.ACCRUAL_MINUTE,
                timezone=self.timezone,
            ),
            id=ACCRUAL_JOB_ID,
            name="Daily Return Accrual",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.info(
            "✅ Scheduled daily accrual at %02d:%02d %s",
            settings.ACCRUAL_HOUR, settings.ACCRUAL_MINUTE, self.timezone.zone,
        )

    def start(self) -> None:
        self.setup_jobs()
        self.scheduler.start()
        logger.info("✅ Scheduler started")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
