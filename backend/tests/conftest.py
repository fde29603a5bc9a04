import os
import uuid
from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests-minimum-32-chars")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.auth.service import create_access_token, hash_password
from app.database import Base, get_db
from app.main import app
from app.models.booking import Booking
from app.models.enums import BookingStatus, PriceType, ServiceCategory, UserRole
from app.models.provider_profile import ProviderProfile
from app.models.service import Service
from app.models.user import User
from app.services.notifications import NotificationDraft

# Use SQLite for tests (in-memory)
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(TEST_DB_URL, echo=False)
test_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class FakeEmitter:
    """Captures notification drafts instead of writing them."""

    def __init__(self):
        self.sent: list[NotificationDraft] = []

    async def emit(self, draft: NotificationDraft) -> None:
        self.sent.append(draft)


class FailingEmitter:
    """Emitter whose delivery always blows up."""

    def __init__(self):
        self.calls = 0

    async def emit(self, draft: NotificationDraft) -> None:
        self.calls += 1
        raise RuntimeError("notification backend down")


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    # Reset rate limiter storage between tests to avoid 429 errors
    from app.utils.rate_limit import limiter
    if hasattr(limiter, "_limiter") and hasattr(limiter._limiter, "_storage"):
        limiter._limiter._storage.reset()
    elif hasattr(limiter, "reset"):
        limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def fake_emitter() -> FakeEmitter:
    return FakeEmitter()


async def make_user(
    db: AsyncSession,
    role: UserRole,
    email: str | None = None,
    name: str = "Test User",
    password: str = "password123",
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email or f"{uuid.uuid4().hex[:8]}@test.com",
        password_hash=hash_password(password),
        role=role,
        name=name,
        phone="+919800000001",
        is_verified=True,
    )
    db.add(user)
    await db.flush()
    return user


@pytest_asyncio.fixture
async def customer_user(db: AsyncSession) -> User:
    return await make_user(db, UserRole.CUSTOMER, email="customer@test.com", name="Priya Customer")


@pytest_asyncio.fixture
async def other_customer(db: AsyncSession) -> User:
    return await make_user(db, UserRole.CUSTOMER, email="other@test.com", name="Vikram Other")


@pytest_asyncio.fixture
async def provider_user(db: AsyncSession) -> User:
    user = await make_user(db, UserRole.PROVIDER, email="provider@test.com", name="Ramesh Provider")
    db.add(ProviderProfile(user_id=user.id, business_name="Ramesh Plumbing", service_areas=["Andheri"]))
    await db.flush()
    return user


@pytest_asyncio.fixture
async def other_provider(db: AsyncSession) -> User:
    user = await make_user(db, UserRole.PROVIDER, email="provider2@test.com", name="Arjun Provider")
    db.add(ProviderProfile(user_id=user.id))
    await db.flush()
    return user


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> User:
    return await make_user(db, UserRole.ADMIN, email="admin@test.com", name="Site Admin")


@pytest_asyncio.fixture
async def service(db: AsyncSession, provider_user: User) -> Service:
    svc = Service(
        id=uuid.uuid4(),
        provider_id=provider_user.id,
        title="Tap repair",
        description="Fix leaking taps",
        category=ServiceCategory.PLUMBER,
        price=Decimal("1500.00"),
        price_type=PriceType.FIXED,
        location="Andheri",
    )
    db.add(svc)
    await db.flush()
    return svc


async def make_booking(
    db: AsyncSession,
    customer: User,
    service: Service,
    status: BookingStatus = BookingStatus.REQUESTED,
    scheduled_date: date = date(2024, 6, 1),
    scheduled_time: str = "10:00",
) -> Booking:
    booking = Booking(
        id=uuid.uuid4(),
        customer_id=customer.id,
        provider_id=service.provider_id,
        service_id=service.id,
        status=status,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        address="12 MG Road",
        total_price=service.price,
    )
    db.add(booking)
    await db.flush()
    return booking


@pytest_asyncio.fixture
async def booking(db: AsyncSession, customer_user: User, service: Service) -> Booking:
    return await make_booking(db, customer_user, service)


def token_for(user: User) -> str:
    return create_access_token(str(user.id))


def customer_token(customer_user: User) -> str:
    return token_for(customer_user)


def provider_token(provider_user: User) -> str:
    return token_for(provider_user)


def admin_token(admin_user: User) -> str:
    return token_for(admin_user)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
