"""Create tables and install the default categories with their pricing rules"""
import asyncio

from wasteless.database import engine, Base, AsyncSessionLocal
from wasteless.models import *  # noqa: F401,F403 - Import all models to register them
from wasteless.services.category_service import seed_default_categories


async def init(bind=engine, session_factory=AsyncSessionLocal) -> int:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created successfully.")

    async with session_factory() as session:
        seeded = await seed_default_categories(session)
    if seeded:
        print(f"Installed {seeded} default categories with pricing rules.")
    else:
        print("Categories already present - pricing rules left untouched.")
    return seeded


if __name__ == "__main__":
    asyncio.run(init())
