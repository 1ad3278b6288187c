from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.security import AdminCredentials
from app.domain.models import VerificationStatus
from app.infrastructure.db import models  # noqa: F401
from app.infrastructure.db.database import Base, get_db, get_session_factory
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.main import create_app
from app.services.container import build_services

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture()
async def db_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        future=True,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def services(session_factory):
    return build_services(session_factory)


@pytest.fixture()
async def seeded_plans(services):
    await services.plans.seed_defaults()
    return await services.plans.list_plans()


@pytest.fixture()
def make_user(session_factory):
    counter = {"n": 0}

    async def _make(
        name: str = "Alice",
        verified: bool = True,
        wallet: str | None = "TWalletAlice",
    ):
        counter["n"] += 1
        async with session_factory() as session:
            async with session.begin():
                return await UserRepository(session).create(
                    name=name,
                    email=f"{name.lower()}{counter['n']}@example.com",
                    is_verified=verified,
                    verification_status=(
                        VerificationStatus.VERIFIED if verified else VerificationStatus.PENDING
                    ),
                    trust_wallet_address=wallet,
                )

    return _make


@pytest.fixture()
def submit_and_decide(services):
    """Submit a request for user and (optionally) decide it"""

    async def _run(user, amount, request_type="deposit", plan="silver", decision="approve", reason=None):
        request = await services.requests.submit(
            user_id=user.id,
            amount=amount,
            request_type=request_type,
            plan=plan,
            wallet_address=user.trust_wallet_address or "TWalletAny",
            transaction_image="https://img.example.com/proof.png" if request_type == "deposit" else None,
        )
        if decision is None:
            return request
        return await services.requests.decide(request.id, decision, reason)

    return _run


@pytest.fixture()
async def app(session_factory) -> FastAPI:
    app = create_app(admin_credentials=AdminCredentials.from_token(ADMIN_TOKEN))

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN, "X-Admin-Id": "ops-admin"}
