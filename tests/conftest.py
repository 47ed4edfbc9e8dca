"""Shared test fixtures for the Winnipeg Connect test suite.

Provides:
    - An in-memory SQLite database (aiosqlite) with SAVEPOINT support
    - A session per test and a session factory for API tests
    - A SimulatedGateway the tests can steer
    - A ``market`` factory for users, jobs, quotes and held payments
    - An httpx AsyncClient bound to the ASGI app
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from winnipeg_connect.config import Settings
from winnipeg_connect.domain.enums import PaymentType, UserRole
from winnipeg_connect.gateways.simulated import SimulatedGateway
from winnipeg_connect.infrastructure.database.engine import enable_sqlite_savepoints
from winnipeg_connect.infrastructure.database.orm_models import Base
from winnipeg_connect.services.job_service import JobService
from winnipeg_connect.services.payment_service import PaymentService
from winnipeg_connect.services.quote_service import QuoteService
from winnipeg_connect.services.user_service import UserService

# ---------------------------------------------------------------------------
# Configuration & gateway
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        app_env="test",
        database_url="sqlite+aiosqlite://",
        payment_gateway="simulated",
    )


@pytest.fixture
def gateway() -> SimulatedGateway:
    return SimulatedGateway()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Domain data
# ---------------------------------------------------------------------------


def sample_job_fields(**overrides) -> dict:
    """Return a valid job creation fields dict."""
    fields = {
        "title": "Kitchen renovation",
        "description": "Replace cabinets and counters in a 1950s bungalow kitchen.",
        "category": "renovation",
        "subcategories": ["kitchen"],
        "budget": {"type": "fixed", "amount": "1000.00"},
        "location": {"city": "Winnipeg", "province": "Manitoba", "suburb": "Wolseley"},
        "priority": "medium",
    }
    fields.update(overrides)
    return fields


def sample_quote_fields(amount: str = "900.00", **overrides) -> dict:
    """Return a valid quote submission fields dict."""
    fields = {
        "price_amount": Decimal(amount),
        "price_type": "fixed",
        "message": "Can start next Monday, supplies included.",
        "includes_supplies": True,
    }
    fields.update(overrides)
    return fields


class Market:
    """Builds marketplace state through the services, one flush at a time."""

    def __init__(self, session: AsyncSession, gateway: SimulatedGateway, settings: Settings):
        self.session = session
        self.gateway = gateway
        self.settings = settings
        self.jobs = JobService(session)
        self.quotes = QuoteService(session, settings)
        self.payments = PaymentService(session, gateway, settings)

    async def user(self, role: UserRole = UserRole.SEEKER, is_admin: bool = False):
        tag = uuid.uuid4().hex[:8]
        return await UserService(self.session).create_user(
            email=f"{role.value}-{tag}@example.ca",
            first_name=role.value.title(),
            last_name=tag,
            role=role,
            is_admin=is_admin,
        )

    async def seeker(self):
        return await self.user(UserRole.SEEKER)

    async def provider(self):
        return await self.user(UserRole.PROVIDER)

    async def job(self, owner, **overrides):
        return await self.jobs.create_job(owner, sample_job_fields(**overrides))

    async def quote(self, provider, job, amount: str = "900.00", **overrides):
        return await self.quotes.submit_quote(
            provider, job.id, sample_quote_fields(amount, **overrides)
        )

    async def expired_quote(self, provider, job, amount: str = "900.00"):
        past = datetime.now(UTC) - timedelta(minutes=1)
        return await self.quote(provider, job, amount, expires_at=past)

    async def accepted(self, amount: str = "900.00"):
        """(seeker, provider, job, quote) with the quote accepted."""
        seeker = await self.seeker()
        provider = await self.provider()
        job = await self.job(seeker)
        quote = await self.quote(provider, job, amount)
        await self.quotes.accept_quote(quote.id, seeker)
        await self.session.refresh(job)
        return seeker, provider, job, quote

    async def held_payment(
        self, amount: str = "900.00", payment_type: PaymentType = PaymentType.DEPOSIT
    ):
        """(seeker, provider, job, payment) with the payment captured and held."""
        seeker, provider, job, quote = await self.accepted(amount)
        payment, _ = await self.payments.create_payment_intent(
            seeker, quote.id, payment_type=payment_type
        )
        payment = await self.payments.confirm_payment(seeker, payment.gateway_intent_id)
        return seeker, provider, job, payment


@pytest_asyncio.fixture
async def market(session, gateway, settings) -> Market:
    return Market(session, gateway, settings)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(session_factory, gateway, settings):
    """AsyncClient against the app, one committed session per request.

    The lifespan is not run: the database is the test engine and Redis is
    left uninitialized, so idempotency keys are not enforced.
    """
    from winnipeg_connect.api.deps import get_app_settings, get_db_session, get_payment_gateway
    from winnipeg_connect.main import create_app

    async def _session_override():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db_session] = _session_override
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_app_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
