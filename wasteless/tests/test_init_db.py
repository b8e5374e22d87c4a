"""
Database bootstrap script tests
"""
import pytest_asyncio
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from init_db import init
from wasteless.database import enable_sqlite_foreign_keys
from wasteless.models.category import Category, PricingRule
from wasteless.services.stores import SqlRuleStore


@pytest_asyncio.fixture()
async def fresh_database():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    enable_sqlite_foreign_keys(engine)
    yield engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def test_init_creates_tables_and_default_categories(fresh_database):
    engine, session_factory = fresh_database

    assert await init(engine, session_factory) == 6

    async with session_factory() as session:
        categories = (await session.execute(select(func.count(Category.id)))).scalar()
        rules = (await session.execute(select(func.count(PricingRule.id)))).scalar()
        herbs = await SqlRuleStore(session).rules_for("herbs")

    assert categories == 6
    assert rules == 4 * 6 + 2 * 4
    assert herbs == [(0, 70), (1, 50), (2, 30), (3, 0)]


async def test_init_is_safe_to_rerun(fresh_database):
    engine, session_factory = fresh_database
    await init(engine, session_factory)

    assert await init(engine, session_factory) == 0

    async with session_factory() as session:
        rules = (await session.execute(select(func.count(PricingRule.id)))).scalar()
    assert rules == 32
