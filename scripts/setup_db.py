"""
Database setup script - tables, default categories and a sample produce batch
"""
import asyncio
from datetime import timedelta

from sqlalchemy import select, func

from wasteless.database import engine, Base, AsyncSessionLocal
from wasteless.models.product import Product
from wasteless.services.category_service import hebrew_label, seed_default_categories
from wasteless.services.pricing_engine import PricingEngine
from wasteless.services.stores import SqlHistoryStore, SqlProductStore, SqlRuleStore
from wasteless.utils.clock import SystemClock

# (name_he, name_en, category, base_price, quantity, unit, days to expiry, batch)
SAMPLE_PRODUCTS = [
    ("עגבניות", "Tomatoes", "vegetables", 12.90, 50, 'ק"ג', 2, "VEG-2024-001"),
    ("מלפפונים", "Cucumbers", "vegetables", 9.90, 40, 'ק"ג', 1, "VEG-2024-002"),
    ("פלפלים", "Bell Peppers", "vegetables", 14.90, 35, 'ק"ג', 3, "VEG-2024-003"),
    ("חסה", "Lettuce", "salads", 7.90, 25, "יחידה", 2, "SAL-2024-001"),
    ("תפוחים", "Apples", "fruits", 11.90, 60, 'ק"ג', 5, "FRU-2024-001"),
    ("בננות", "Bananas", "fruits", 8.90, 45, 'ק"ג', 1, "FRU-2024-002"),
    ("תפוזים", "Oranges", "fruits", 10.90, 55, 'ק"ג', 4, "FRU-2024-003"),
    ("פטרוזיליה", "Parsley", "herbs", 5.90, 20, "אגודה", 1, "HRB-2024-001"),
    ("כוסברה", "Cilantro", "herbs", 5.90, 15, "אגודה", 2, "HRB-2024-002"),
    ("תותים", "Strawberries", "fruits", 19.90, 30, "קופסה", 0, "FRU-2024-004"),
]


async def setup_database():
    """Create tables and seed initial data"""
    print("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Tables created")

    async with AsyncSessionLocal() as session:
        seeded = await seed_default_categories(session)
        print(f"Seeded {seeded} categories")

        existing = await session.execute(select(func.count(Product.id)))
        if existing.scalar():
            print("Products already present - skipping sample data")
            return

        clock = SystemClock()
        pricing_engine = PricingEngine(
            SqlProductStore(session), SqlRuleStore(session), SqlHistoryStore(session), clock=clock,
        )
        today = clock.today()

        for name_he, name_en, category, base_price, quantity, unit, days, batch in SAMPLE_PRODUCTS:
            expiry_date = today + timedelta(days=days)
            quote = await pricing_engine.price_for(base_price, category, expiry_date)
            session.add(Product(
                name_he=name_he,
                name_en=name_en,
                category=category,
                category_he=await hebrew_label(session, category),
                base_price=base_price,
                current_price=quote.current_price,
                discount_percent=quote.discount_percent,
                quantity=quantity,
                unit=unit,
                expiry_date=expiry_date,
                batch_number=batch,
            ))

        await session.commit()
        print(f"Created {len(SAMPLE_PRODUCTS)} sample products")

    print("\nDatabase setup complete!")


if __name__ == "__main__":
    asyncio.run(setup_database())
