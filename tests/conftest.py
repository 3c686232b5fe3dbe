"""
Pytest configuration and fixtures.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import optiquote.models  # noqa: F401
from optiquote.core.database import Base, get_db
from optiquote.core.security import create_access_token
from optiquote.main import app
from optiquote.models.product import Product
from optiquote.models.user import User, UserRole
from optiquote.schemas.quotation import QuotationItemCreate
from optiquote.services.catalog import CatalogService
from optiquote.services.notification import NotificationService
from optiquote.services.order_conversion import OrderConversionService
from optiquote.services.policy import QuotationPolicy
from optiquote.services.quotation_store import QuotationStore
from optiquote.services.quotation_workflow import QuotationWorkflow


# Test database URL (in-memory SQLite, one shared connection)
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FrozenClock:
    """Controllable clock injected into the workflow."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
async def test_engine():
    """Create a fresh database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave on SQLite.
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database session override."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, email: str, full_name: str, role: UserRole) -> User:
    user = User(email=email, full_name=full_name, role=role, is_active=True)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def customer(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "jane@example.com", "Jane Marie Doe", UserRole.CUSTOMER)


@pytest.fixture
async def other_customer(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "john@example.com", "John Smith", UserRole.CUSTOMER)


@pytest.fixture
async def staff(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "optician@example.com", "Olivia Optician", UserRole.STAFF)


@pytest.fixture
async def products(db_session: AsyncSession) -> list[Product]:
    """A frame and a lens type, both priced at 100.00 with stock 10."""
    items = [
        Product(
            name="Aviator Frame",
            sku="FRM-001",
            image_url="https://cdn.example.com/aviator.jpg",
            unit_price=Decimal("100.00"),
            stock_quantity=10,
        ),
        Product(
            name="Progressive Lens",
            sku="LNS-002",
            image_url=None,
            unit_price=Decimal("100.00"),
            stock_quantity=10,
        ),
    ]
    db_session.add_all(items)
    await db_session.commit()
    for product in items:
        await db_session.refresh(product)
    return items


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def make_workflow(db_session: AsyncSession, clock: FrozenClock):
    """Factory building a workflow over the test session."""

    def factory(
        policy: QuotationPolicy | None = None,
        catalog: CatalogService | None = None,
        notifier=None,
    ) -> QuotationWorkflow:
        policy = policy or QuotationPolicy()
        store = QuotationStore(db_session, optimistic_locking=policy.optimistic_locking)
        catalog = catalog or CatalogService(db_session)
        return QuotationWorkflow(
            store=store,
            catalog=catalog,
            notifier=notifier or NotificationService(db_session),
            conversion=OrderConversionService(db_session, store, catalog, policy),
            policy=policy,
            clock=clock,
        )

    return factory


@pytest.fixture
def workflow(make_workflow) -> QuotationWorkflow:
    return make_workflow()


@pytest.fixture
def line():
    """Build a requested line item."""

    def factory(product: Product, quantity: int, **specifications) -> QuotationItemCreate:
        return QuotationItemCreate(
            product_id=product.id,
            quantity=quantity,
            specifications=specifications,
        )

    return factory


@pytest.fixture
def auth_headers():
    """Bearer headers for a user, signed like the identity provider does."""

    def factory(user: User) -> dict[str, str]:
        token = create_access_token(user.id, user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return factory
