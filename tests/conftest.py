"""
Test Suite Configuration
"""
from datetime import date
from typing import AsyncGenerator, List

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from seller_analytics.config import Settings
from seller_analytics.database.connection import get_db_dependency
from seller_analytics.database.models import Base, Store
from seller_analytics.engine import DailyRecord, OperationalExpense, ProductMeta, ProductSale


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def day1() -> date:
    return date(2025, 1, 10)


@pytest.fixture
def day2() -> date:
    return date(2025, 1, 11)


@pytest.fixture
def two_day_records(day1, day2) -> List[DailyRecord]:
    """Two days of activity with product lines matching the day revenue"""
    return [
        DailyRecord(
            date=day1,
            orders=2,
            revenue=10000.0,
            cost=4000.0,
            advertising=500.0,
            commissions=1250.0,
            tax=400.0,
            delivery=300.0,
            products=[
                ProductSale(code="SKU-A", name="Phone case", qty=3, revenue=6000.0, cost_price=2400.0),
                ProductSale(code="SKU-B", name="Charger", qty=1, revenue=4000.0, cost_price=1600.0),
            ],
        ),
        DailyRecord(
            date=day2,
            orders=1,
            revenue=5000.0,
            cost=2000.0,
            advertising=0.0,
            commissions=625.0,
            tax=200.0,
            delivery=150.0,
            products=[
                ProductSale(code="SKU-A", name="Phone case", qty=2, revenue=5000.0, cost_price=2000.0),
            ],
        ),
    ]


@pytest.fixture
def two_day_expense(day1, day2) -> OperationalExpense:
    return OperationalExpense(id="exp-1", name="Warehouse", amount=300.0, start_date=day1, end_date=day2)


@pytest.fixture
def catalog() -> List[ProductMeta]:
    return [
        ProductMeta(sku="SKU-A", name="Phone case", ad_cost=100.0, group="accessories"),
        ProductMeta(sku="SKU-B", name="Charger", ad_cost=0.0, group="accessories"),
    ]


@pytest.fixture
async def test_engine():
    """In-memory database shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def store(session_factory) -> Store:
    """A committed store with explicit commission and tax rates"""
    async with session_factory() as session:
        store = Store(id="store-1", user_id="user-1", name="Test Store", commission_rate=0.125, tax_rate=0.04)
        session.add(store)
        await session.commit()
    return store


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the in-memory database"""
    from seller_analytics.main import app

    async def override_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_dependency] = override_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
