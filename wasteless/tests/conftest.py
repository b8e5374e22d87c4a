"""
Test fixtures - in-memory SQLite database, HTTP client and in-memory pricing stores
"""
from datetime import timedelta
from decimal import Decimal
import asyncio

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from wasteless.database import Base, get_db, enable_sqlite_foreign_keys
from wasteless.main import app
from wasteless.models.product import Product
from wasteless.services.category_service import seed_default_categories
from wasteless.services.discount_rules import DEFAULT_CATEGORY_RULES, SHORT_SHELF_LIFE_RULES
from wasteless.services.pricing_engine import PricingEngine
from wasteless.tests.fakes import (
    TODAY, InMemoryHistoryStore, InMemoryProductStore, InMemoryRuleStore,
)
from wasteless.utils.clock import FixedClock


@pytest.fixture()
def today():
    return TODAY


# ===================== DATABASE =====================


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Default categories with their staircases"""
    await seed_default_categories(db_session)


@pytest.fixture()
def make_product(db_session):
    """Insert a product with stored price fields exactly as given"""

    async def _make(
        name_en="Tomatoes",
        category="vegetables",
        base_price="12.90",
        current_price=None,
        discount_percent=0,
        days_left=10,
        quantity=10,
        **extra,
    ) -> Product:
        product = Product(
            name_he=extra.pop("name_he", name_en),
            name_en=name_en,
            category=category,
            category_he=extra.pop("category_he", category),
            base_price=Decimal(base_price),
            current_price=Decimal(current_price if current_price is not None else base_price),
            discount_percent=discount_percent,
            quantity=quantity,
            unit=extra.pop("unit", 'ק"ג'),
            expiry_date=TODAY + timedelta(days=days_left),
            **extra,
        )
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _make


# ===================== HTTP CLIENT =====================


@pytest_asyncio.fixture()
async def client(db_session, seed_data):
    """httpx AsyncClient bound to the FastAPI app with a pinned clock"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.clock = FixedClock(TODAY)
    app.state.recompute_lock = asyncio.Lock()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.clock = None
    app.state.recompute_lock = None


# ===================== PRICING ENGINE =====================


@pytest.fixture()
def rule_store():
    return InMemoryRuleStore({
        "vegetables": list(DEFAULT_CATEGORY_RULES),
        "fruits": list(DEFAULT_CATEGORY_RULES),
        "herbs": list(SHORT_SHELF_LIFE_RULES),
    })


@pytest.fixture()
def build_engine(rule_store):
    """PricingEngine over in-memory stores, clock pinned to TODAY"""

    def _build(products=(), lock=None) -> PricingEngine:
        return PricingEngine(
            products=InMemoryProductStore(products),
            rules=rule_store,
            history=InMemoryHistoryStore(),
            clock=FixedClock(TODAY),
            lock=lock,
        )

    return _build
