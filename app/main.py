"""
FastAPI Main Application
Tier ledger API with the daily accrual scheduler
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional

from app.config import settings
from app.core.logging import setup_logging
from app.core.security import AdminCredentials
from app.api.errors import register_exception_handlers
from app.infrastructure.db.database import async_session_factory, init_db, close_db
from app.services.container import build_services
from app.services.notification_service import drain_pending_pushes
from app.scheduler.main import PortfolioScheduler

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of the database and scheduler
    """
    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting Tier Ledger")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    services = build_services(async_session_factory)

    if settings.SEED_DEFAULT_PLANS:
        created = await services.plans.seed_defaults()
        logger.info("✅ Plan catalog ready (seeded: %s)", ", ".join(created) or "none")

    app.state.scheduler = None
    if settings.SCHEDULER_ENABLED:
        try:
            scheduler = PortfolioScheduler(services.accrual)
            scheduler.start()
            app.state.scheduler = scheduler
        except Exception as e:
            logger.error(f"❌ Failed to start scheduler: {e}")
    else:
        logger.info("⏰ Scheduler disabled")

    logger.info(f"   ✅ API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info(f"   ✅ Scheduler: {'Enabled' if settings.SCHEDULER_ENABLED else 'Disabled'}")
    logger.info(f"   ✅ Telegram: {'Enabled' if settings.TELEGRAM_ENABLED else 'Disabled'}")

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down Tier Ledger...")
    if app.state.scheduler:
        app.state.scheduler.stop()
    await drain_pending_pushes()
    await close_db()
    logger.info("✅ Database connections closed")


def create_app(admin_credentials: Optional[AdminCredentials] = None) -> FastAPI:
    app = FastAPI(
        title="Tier Ledger",
        description="Plan-based portfolio ledger with admin-approved deposits and withdrawals",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Resolved once per process; require_admin reads it from app.state
    app.state.admin_credentials = admin_credentials or AdminCredentials.from_token(
        settings.ADMIN_API_TOKEN
    )
    app.state.scheduler = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    from app.api.routes import (
        health,
        history,
        investments,
        notifications,
        plans,
        portfolio,
        referrals,
        transactions,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(plans.router, prefix="/api/v1/plans", tags=["Plans"])
    app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["Transactions"])
    app.include_router(investments.router, prefix="/api/v1/investments", tags=["Investments"])
    app.include_router(history.router, prefix="/api/v1/history", tags=["History"])
    app.include_router(portfolio.router, prefix="/api/v1/portfolio", tags=["Portfolio"])
    app.include_router(referrals.router, prefix="/api/v1/referrals", tags=["Referrals"])
    app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["Notifications"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
