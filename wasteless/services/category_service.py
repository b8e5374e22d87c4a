"""
Category lifecycle: rule seeding on create, code rename cascade, soft/hard delete.

The category code (name_en) is the join key used by products and pricing
rules, so renaming a category rewrites it in both tables.
"""
from typing import Optional, Sequence
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from wasteless.exceptions import ConflictError, NotFoundError
from wasteless.models.category import Category, PricingRule
from wasteless.models.product import Product
from wasteless.services.discount_rules import (
    DEFAULT_CATEGORY_RULES, SHORT_SHELF_LIFE_RULES, Rule,
)

logger = logging.getLogger(__name__)

# (code, Hebrew label, icon, staircase) installed on an empty database
BOOTSTRAP_CATEGORIES: Sequence[tuple[str, str, str, Sequence[Rule]]] = (
    ("vegetables", "ירקות", "🥬", DEFAULT_CATEGORY_RULES),
    ("fruits", "פירות", "🍎", DEFAULT_CATEGORY_RULES),
    ("herbs", "עשבי תיבול", "🌿", SHORT_SHELF_LIFE_RULES),
    ("salads", "סלטים", "🥗", SHORT_SHELF_LIFE_RULES),
    ("dairy", "מוצרי חלב", "🧀", DEFAULT_CATEGORY_RULES),
    ("bakery", "מאפים", "🥖", DEFAULT_CATEGORY_RULES),
)


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category")
    return category


async def hebrew_label(db: AsyncSession, code: str) -> str:
    """Hebrew label for a category code, or the code itself when unknown"""
    result = await db.execute(select(Category.name_he).where(Category.name_en == code))
    return result.scalar_one_or_none() or code


def _rule_rows(code: str, rules: Sequence[Rule]) -> list[PricingRule]:
    return [
        PricingRule(category=code, days_to_expiry=days, discount_percent=discount)
        for days, discount in rules
    ]


async def create_category(
    db: AsyncSession,
    name_en: str,
    name_he: str,
    icon: Optional[str] = None,
    sort_order: int = 0,
    rules: Sequence[Rule] = DEFAULT_CATEGORY_RULES,
) -> Category:
    existing = await db.execute(select(Category.id).where(Category.name_en == name_en))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Category with this English name already exists")

    category = Category(name_en=name_en, name_he=name_he, icon=icon, sort_order=sort_order, is_active=True)
    db.add(category)
    db.add_all(_rule_rows(name_en, rules))
    await db.commit()
    await db.refresh(category)
    logger.info(f"Created category {name_en} with {len(rules)} pricing rules")
    return category


async def update_category(db: AsyncSession, category_id: int, changes: dict) -> Category:
    category = await get_category(db, category_id)

    new_code = changes.get("name_en")
    if new_code and new_code != category.name_en:
        conflict = await db.execute(
            select(Category.id).where(Category.name_en == new_code, Category.id != category_id)
        )
        if conflict.scalar_one_or_none() is not None:
            raise ConflictError("Category with this English name already exists")

        old_code = category.name_en
        await db.execute(
            update(PricingRule).where(PricingRule.category == old_code).values(category=new_code)
        )
        await db.execute(
            update(Product).where(Product.category == old_code).values(category=new_code)
        )
        logger.info(f"Renamed category {old_code} -> {new_code}")

    for key, value in changes.items():
        setattr(category, key, value)

    await db.commit()
    await db.refresh(category)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> dict:
    """Deactivate a category that products still use; otherwise delete it with its rules"""
    category = await get_category(db, category_id)

    result = await db.execute(
        select(func.count(Product.id)).where(Product.category == category.name_en)
    )
    product_count = result.scalar() or 0

    if product_count > 0:
        category.is_active = False
        await db.commit()
        return {
            "message": "Category deactivated (has products)",
            "id": category_id,
            "product_count": product_count,
        }

    await db.execute(delete(PricingRule).where(PricingRule.category == category.name_en))
    await db.delete(category)
    await db.commit()
    return {"message": "Category deleted", "id": category_id}


async def seed_default_categories(db: AsyncSession) -> int:
    """Install the bootstrap categories and their staircases when no categories exist"""
    result = await db.execute(select(func.count(Category.id)))
    if result.scalar():
        return 0

    for order, (code, label, icon, rules) in enumerate(BOOTSTRAP_CATEGORIES):
        db.add(Category(name_en=code, name_he=label, icon=icon, sort_order=order, is_active=True))
        # stray rules left behind without a category
        await db.execute(delete(PricingRule).where(PricingRule.category == code))
        db.add_all(_rule_rows(code, rules))

    await db.commit()
    logger.info(f"Seeded {len(BOOTSTRAP_CATEGORIES)} default categories with pricing rules")
    return len(BOOTSTRAP_CATEGORIES)
