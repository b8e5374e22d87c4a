"""
Pricing API endpoints - manual recompute, rules, history and reports
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Dict, List, Optional
from datetime import date, datetime, timedelta
from pydantic import BaseModel, Field

from wasteless.api.deps import get_clock, get_pricing_engine
from wasteless.database import get_db
from wasteless.exceptions import NotFoundError
from wasteless.models.category import PricingRule
from wasteless.models.product import Product, PriceHistory
from wasteless.services.discount_rules import staircase
from wasteless.services.expiry import days_to_expiry
from wasteless.services.price_calculator import round_price
from wasteless.services.pricing_engine import PricingEngine
from wasteless.services.stores import SqlRuleStore
from wasteless.utils.clock import Clock
from wasteless.utils.helpers import format_currency

router = APIRouter()


class PricingRuleResponse(BaseModel):
    id: int
    category: str
    days_to_expiry: int
    discount_percent: int

    class Config:
        from_attributes = True


class PricingRuleUpdate(BaseModel):
    discount_percent: int = Field(ge=0, le=100)


class ChangedProduct(BaseModel):
    id: int
    name_he: str
    name_en: str
    category: str
    base_price: float
    current_price: float
    discount_percent: int
    old_price: float
    old_discount: int
    days_to_expiry: int
    expiry_date: date
    updated_at: Optional[datetime] = None


class RecalculateResponse(BaseModel):
    message: str
    updated_products: List[ChangedProduct]


class HistoryEntryResponse(BaseModel):
    id: int
    product_id: int
    name_he: Optional[str] = None
    name_en: Optional[str] = None
    old_price: float
    new_price: float
    old_discount: int
    new_discount: int
    reason: Optional[str] = None
    created_at: Optional[datetime] = None


@router.get("/summary")
async def pricing_summary(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Dashboard totals and per-category breakdown"""
    today = clock.today()
    savings_expr = (Product.base_price - Product.current_price) * Product.quantity

    total = await db.execute(select(func.count(Product.id)))
    discounted = await db.execute(
        select(func.count(Product.id)).where(Product.discount_percent > 0)
    )
    expiring = await db.execute(
        select(func.count(Product.id)).where(Product.expiry_date <= today + timedelta(days=3))
    )
    savings = await db.execute(
        select(func.coalesce(func.sum(savings_expr), 0)).where(Product.discount_percent > 0)
    )

    breakdown_result = await db.execute(
        select(
            Product.category,
            Product.category_he,
            func.count(Product.id).label("count"),
            func.avg(Product.discount_percent).label("avg_discount"),
            func.coalesce(func.sum(savings_expr), 0).label("potential_savings"),
        )
        .group_by(Product.category, Product.category_he)
        .order_by(Product.category)
    )

    total_savings = round_price(savings.scalar() or 0)
    return {
        "total_products": total.scalar() or 0,
        "discounted_products": discounted.scalar() or 0,
        "expiring_products": expiring.scalar() or 0,
        "total_savings": float(total_savings),
        "total_savings_display": format_currency(total_savings),
        "category_breakdown": [
            {
                "category": row.category,
                "category_he": row.category_he,
                "count": row.count,
                "avg_discount": round(float(row.avg_discount or 0), 1),
                "potential_savings": float(round_price(row.potential_savings or 0)),
            }
            for row in breakdown_result.all()
        ],
    }


@router.post("/calculate", response_model=RecalculateResponse)
async def recalculate_prices(engine: PricingEngine = Depends(get_pricing_engine)):
    """Run the bulk recompute now (serialized with the scheduled run)"""
    changes = await engine.recompute_all()
    return RecalculateResponse(
        message=f"Updated {len(changes)} products",
        updated_products=[ChangedProduct(**change.to_dict()) for change in changes],
    )


@router.get("/rules", response_model=Dict[str, List[PricingRuleResponse]])
async def list_pricing_rules(db: AsyncSession = Depends(get_db)):
    """Rules grouped by category, highest threshold first"""
    result = await db.execute(
        select(PricingRule).order_by(PricingRule.category, PricingRule.days_to_expiry.desc())
    )
    grouped: Dict[str, List[PricingRule]] = {}
    for rule in result.scalars().all():
        grouped.setdefault(rule.category, []).append(rule)
    return grouped


@router.get("/rules/{category}/staircase")
async def preview_staircase(
    category: str,
    max_days: int = Query(7, ge=0, le=60),
    db: AsyncSession = Depends(get_db),
):
    """Resolved discount for each day count, fallback ladder included"""
    rules = await SqlRuleStore(db).rules_for(category)
    return {
        "category": category,
        "configured_rules": len(rules),
        "discounts": staircase(rules, max_days),
    }


@router.put("/rules/{rule_id}", response_model=PricingRuleResponse)
async def update_pricing_rule(
    rule_id: int,
    data: PricingRuleUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Only the discount of a rule is editable"""
    rule = await db.get(PricingRule, rule_id)
    if not rule:
        raise NotFoundError("Pricing rule")

    rule.discount_percent = data.discount_percent
    await db.commit()
    await db.refresh(rule)
    return rule


@router.get("/history", response_model=List[HistoryEntryResponse])
async def price_history(
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(PriceHistory, Product.name_he, Product.name_en)
        .join(Product, PriceHistory.product_id == Product.id)
        .order_by(PriceHistory.created_at.desc(), PriceHistory.id.desc())
        .limit(limit)
    )
    return [
        HistoryEntryResponse(
            id=entry.id,
            product_id=entry.product_id,
            name_he=name_he,
            name_en=name_en,
            old_price=entry.old_price,
            new_price=entry.new_price,
            old_discount=entry.old_discount,
            new_discount=entry.new_discount,
            reason=entry.reason,
            created_at=entry.created_at,
        )
        for entry, name_he, name_en in result.all()
    ]


@router.get("/expiring")
async def expiring_products(
    days: int = Query(7, ge=0, le=365),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Products expiring within ``days``, bucketed by urgency"""
    today = clock.today()
    result = await db.execute(
        select(Product)
        .where(Product.expiry_date <= today + timedelta(days=days))
        .order_by(Product.expiry_date.asc())
    )

    products = []
    for p in result.scalars().all():
        products.append({
            "id": p.id,
            "name_he": p.name_he,
            "name_en": p.name_en,
            "category": p.category,
            "base_price": float(p.base_price),
            "current_price": float(p.current_price),
            "discount_percent": p.discount_percent,
            "quantity": p.quantity,
            "unit": p.unit,
            "expiry_date": p.expiry_date.isoformat(),
            "days_to_expiry": days_to_expiry(p.expiry_date, today),
        })

    by_days = [p["days_to_expiry"] for p in products]
    return {
        "total": len(products),
        "by_urgency": {
            "critical": sum(1 for d in by_days if d == 0),
            "urgent": sum(1 for d in by_days if d == 1),
            "warning": sum(1 for d in by_days if 2 <= d <= 3),
            "normal": sum(1 for d in by_days if d > 3),
        },
        "products": products,
    }
