"""
Products API endpoints - perishable inventory with expiry-driven prices
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import List, Optional
from datetime import date, datetime, timedelta
from pydantic import BaseModel, Field

from wasteless.api.deps import get_clock, get_pricing_engine
from wasteless.config import get_settings
from wasteless.database import get_db
from wasteless.exceptions import NotFoundError, ValidationError
from wasteless.models.product import Product, PriceHistory
from wasteless.services.category_service import hebrew_label
from wasteless.services.expiry import days_to_expiry
from wasteless.services.pricing_engine import PricingEngine
from wasteless.utils.clock import Clock

router = APIRouter()

EXPIRY_FILTERS = {"today", "tomorrow", "week"}


class ProductResponse(BaseModel):
    id: int
    name_he: str
    name_en: str
    category: str
    category_he: str
    base_price: float
    current_price: float
    discount_percent: int
    quantity: int
    unit: str
    expiry_date: date
    batch_number: Optional[str] = None
    catalog_number: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    days_to_expiry: int = 0

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    name_he: str = Field(min_length=1)
    name_en: str = Field(min_length=1)
    category: str = Field(min_length=1)
    category_he: Optional[str] = None
    base_price: float = Field(gt=0)
    quantity: int = Field(ge=0)
    unit: Optional[str] = None
    expiry_date: date
    batch_number: Optional[str] = None
    catalog_number: Optional[str] = None
    image_url: Optional[str] = None


class ProductUpdate(BaseModel):
    name_he: Optional[str] = None
    name_en: Optional[str] = None
    category: Optional[str] = None
    category_he: Optional[str] = None
    base_price: Optional[float] = Field(default=None, gt=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = None
    catalog_number: Optional[str] = None
    image_url: Optional[str] = None


class PriceHistoryResponse(BaseModel):
    id: int
    product_id: int
    old_price: float
    new_price: float
    old_discount: int
    new_discount: int
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _to_response(product: Product, today: date) -> ProductResponse:
    response = ProductResponse.model_validate(product)
    response.days_to_expiry = days_to_expiry(product.expiry_date, today)
    return response


async def _get_product(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product")
    return product


@router.get("/", response_model=List[ProductResponse])
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    expiry: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """List products, soonest expiry first"""
    today = clock.today()
    query = select(Product)

    if category:
        query = query.where(Product.category == category)
    if search:
        term = f"%{search}%"
        query = query.where(or_(
            Product.name_he.like(term),
            Product.name_en.like(term),
            Product.batch_number.like(term),
        ))
    if expiry:
        if expiry not in EXPIRY_FILTERS:
            raise ValidationError(f"expiry must be one of {sorted(EXPIRY_FILTERS)}")
        if expiry == "today":
            query = query.where(Product.expiry_date == today)
        elif expiry == "tomorrow":
            query = query.where(Product.expiry_date == today + timedelta(days=1))
        else:
            query = query.where(Product.expiry_date <= today + timedelta(days=7))

    query = query.order_by(Product.expiry_date.asc(), Product.discount_percent.desc())
    result = await db.execute(query)
    return [_to_response(p, today) for p in result.scalars().all()]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    product = await _get_product(db, product_id)
    return _to_response(product, clock.today())


@router.post("/", response_model=ProductResponse, status_code=201)
async def create_product(
    data: ProductCreate,
    db: AsyncSession = Depends(get_db),
    engine: PricingEngine = Depends(get_pricing_engine),
):
    """Create a product; its discount and current price are derived, never supplied"""
    quote = await engine.price_for(data.base_price, data.category, data.expiry_date)

    fields = data.model_dump()
    fields["category_he"] = data.category_he or await hebrew_label(db, data.category)
    fields["unit"] = data.unit or get_settings().DEFAULT_UNIT

    product = Product(
        **fields,
        current_price=quote.current_price,
        discount_percent=quote.discount_percent,
    )
    db.add(product)
    await db.commit()
    await db.refresh(product)

    response = ProductResponse.model_validate(product)
    response.days_to_expiry = quote.days_to_expiry
    return response


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    engine: PricingEngine = Depends(get_pricing_engine),
):
    """Update a product; price and discount are re-derived from the effective values"""
    product = await _get_product(db, product_id)

    updates = data.model_dump(exclude_none=True)
    base_price = updates.get("base_price", product.base_price)
    category = updates.get("category", product.category)
    expiry_date = updates.get("expiry_date", product.expiry_date)

    quote = await engine.price_for(base_price, category, expiry_date)

    if "category" in updates and "category_he" not in updates:
        updates["category_he"] = await hebrew_label(db, category)
    for key, value in updates.items():
        setattr(product, key, value)
    product.current_price = quote.current_price
    product.discount_percent = quote.discount_percent

    await db.commit()
    await db.refresh(product)

    response = ProductResponse.model_validate(product)
    response.days_to_expiry = quote.days_to_expiry
    return response


@router.delete("/{product_id}")
async def delete_product(product_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a product together with its price history"""
    product = await _get_product(db, product_id)
    await db.delete(product)
    await db.commit()
    return {"message": "Product deleted successfully", "id": product_id}


@router.get("/{product_id}/history", response_model=List[PriceHistoryResponse])
async def get_product_history(
    product_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    await _get_product(db, product_id)
    result = await db.execute(
        select(PriceHistory)
        .where(PriceHistory.product_id == product_id)
        .order_by(PriceHistory.created_at.desc(), PriceHistory.id.desc())
        .limit(limit)
    )
    return result.scalars().all()
