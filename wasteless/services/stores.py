"""
Store interfaces used by the pricing engine, plus their SQLAlchemy implementations.

The engine only sees the Protocols below, so tests can hand it in-memory fakes.
The SQL stores commit every write on their own: a bulk recompute that fails
half-way keeps the updates it already made.
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass, asdict
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol, List, Tuple
import logging

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wasteless.exceptions import NotFoundError, StoreError
from wasteless.models.product import Product, PriceHistory
from wasteless.models.category import PricingRule

logger = logging.getLogger(__name__)


@dataclass
class ProductRecord:
    id: int
    name_he: str
    name_en: str
    category: str
    category_he: str
    base_price: Decimal
    current_price: Decimal
    discount_percent: int
    quantity: int
    unit: str
    expiry_date: date
    batch_number: Optional[str] = None
    catalog_number: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, product: Product) -> "ProductRecord":
        return cls(
            id=product.id,
            name_he=product.name_he,
            name_en=product.name_en,
            category=product.category,
            category_he=product.category_he,
            base_price=product.base_price,
            current_price=product.current_price,
            discount_percent=product.discount_percent,
            quantity=product.quantity,
            unit=product.unit,
            expiry_date=product.expiry_date,
            batch_number=product.batch_number,
            catalog_number=product.catalog_number,
            image_url=product.image_url,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PriceFields:
    """Price and discount are always written together"""
    current_price: Decimal
    discount_percent: int


class ProductStore(Protocol):
    async def list_all(self) -> List[ProductRecord]: ...

    async def get_by_id(self, product_id: int) -> Optional[ProductRecord]: ...

    async def update(self, product_id: int, fields: PriceFields) -> None: ...


class RuleStore(Protocol):
    async def rules_for(self, category: str) -> List[Tuple[int, int]]: ...


class HistoryStore(Protocol):
    async def append(
        self,
        product_id: int,
        old_price: Decimal,
        new_price: Decimal,
        old_discount: int,
        new_discount: int,
        reason: str,
    ) -> None: ...


@asynccontextmanager
async def _store_operation(session: AsyncSession, action: str):
    try:
        yield
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"{action} failed: {e}")
        raise StoreError(f"{action} failed", {"error": str(e)}) from e


class SqlProductStore:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> List[ProductRecord]:
        async with _store_operation(self.session, "Loading products"):
            result = await self.session.execute(select(Product).order_by(Product.id))
            return [ProductRecord.from_model(p) for p in result.scalars().all()]

    async def get_by_id(self, product_id: int) -> Optional[ProductRecord]:
        async with _store_operation(self.session, f"Loading product {product_id}"):
            product = await self.session.get(Product, product_id)
            return ProductRecord.from_model(product) if product else None

    async def update(self, product_id: int, fields: PriceFields) -> None:
        async with _store_operation(self.session, f"Updating product {product_id}"):
            result = await self.session.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(
                    current_price=fields.current_price,
                    discount_percent=fields.discount_percent,
                    updated_at=func.now(),
                )
            )
            if result.rowcount == 0:
                await self.session.rollback()
                raise NotFoundError("Product", {"id": product_id})
            await self.session.commit()


class SqlRuleStore:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def rules_for(self, category: str) -> List[Tuple[int, int]]:
        async with _store_operation(self.session, f"Loading pricing rules for {category}"):
            result = await self.session.execute(
                select(PricingRule.days_to_expiry, PricingRule.discount_percent)
                .where(PricingRule.category == category)
                .order_by(PricingRule.days_to_expiry.asc())
            )
            return [(row.days_to_expiry, row.discount_percent) for row in result.all()]


class SqlHistoryStore:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(
        self,
        product_id: int,
        old_price: Decimal,
        new_price: Decimal,
        old_discount: int,
        new_discount: int,
        reason: str,
    ) -> None:
        async with _store_operation(self.session, f"Recording price history for product {product_id}"):
            self.session.add(PriceHistory(
                product_id=product_id,
                old_price=old_price,
                new_price=new_price,
                old_discount=old_discount,
                new_discount=new_discount,
                reason=reason,
            ))
            await self.session.commit()
