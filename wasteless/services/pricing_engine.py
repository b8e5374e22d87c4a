"""
Pricing engine - derives discount and current price from expiry and category rules.

Two entry points:
    price_for()      stateless quote used by product create/update before persisting
    recompute_all()  bulk pass over every product, persisting changes and history

recompute_all() holds the engine's lock for the whole run. Engines built for
the scheduler and for the manual trigger share one lock, so two bulk runs
never interleave over the same rows.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from wasteless.services.discount_rules import DiscountRuleResolver
from wasteless.services.expiry import DateLike, days_to_expiry, to_calendar_date
from wasteless.services.price_calculator import Number, calculate_price, to_decimal
from wasteless.services.stores import (
    HistoryStore, PriceFields, ProductRecord, ProductStore, RuleStore,
)
from wasteless.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

AUTO_UPDATE_REASON = "Auto-update: {days} days to expiry"


@dataclass(frozen=True)
class PriceQuote:
    current_price: Decimal
    discount_percent: int
    days_to_expiry: int


@dataclass
class PriceChange:
    """A product changed by a bulk recompute, with its values before the change"""
    product: ProductRecord
    old_price: Decimal
    old_discount: int
    days_to_expiry: int

    def to_dict(self) -> dict:
        data = self.product.to_dict()
        data.update(
            old_price=self.old_price,
            old_discount=self.old_discount,
            days_to_expiry=self.days_to_expiry,
        )
        return data


class PricingEngine:

    def __init__(
        self,
        products: ProductStore,
        rules: RuleStore,
        history: HistoryStore,
        clock: Optional[Clock] = None,
        lock: Optional[asyncio.Lock] = None,
    ):
        self.products = products
        self.history = history
        self.resolver = DiscountRuleResolver(rules)
        self.clock = clock or SystemClock()
        self.lock = lock or asyncio.Lock()

    def _today(self, today: Optional[DateLike]) -> date:
        return to_calendar_date(today) if today is not None else self.clock.today()

    async def price_for(
        self,
        base_price: Number,
        category: str,
        expiry_date: DateLike,
        today: Optional[DateLike] = None,
    ) -> PriceQuote:
        """Price a new or edited product. Writes nothing."""
        days = days_to_expiry(expiry_date, self._today(today))
        discount = await self.resolver.resolve(category, days)
        return PriceQuote(
            current_price=calculate_price(base_price, discount),
            discount_percent=discount,
            days_to_expiry=days,
        )

    async def recompute_all(self, today: Optional[DateLike] = None) -> List[PriceChange]:
        """
        Re-evaluate every product and persist the ones whose price or discount moved.

        Each changed product gets one update (price + discount together) followed
        by one history entry. Store errors abort the run and propagate; updates
        written before the failure stay written.
        """
        as_of = self._today(today)

        async with self.lock:
            changes: List[PriceChange] = []
            for product in await self.products.list_all():
                change = await self._recompute_one(product, as_of)
                if change:
                    changes.append(change)

        logger.info(f"Bulk recompute for {as_of.isoformat()}: {len(changes)} product(s) changed")
        return changes

    async def _recompute_one(self, product: ProductRecord, as_of: date) -> Optional[PriceChange]:
        quote = await self.price_for(product.base_price, product.category, product.expiry_date, as_of)

        old_price = to_decimal(product.current_price)
        old_discount = product.discount_percent
        if quote.discount_percent == old_discount and quote.current_price == old_price:
            return None

        await self.products.update(
            product.id,
            PriceFields(current_price=quote.current_price, discount_percent=quote.discount_percent),
        )
        await self.history.append(
            product_id=product.id,
            old_price=old_price,
            new_price=quote.current_price,
            old_discount=old_discount,
            new_discount=quote.discount_percent,
            reason=AUTO_UPDATE_REASON.format(days=quote.days_to_expiry),
        )
        logger.debug(
            f"Product {product.id} ({product.name_en}): "
            f"{old_price} @ {old_discount}% -> {quote.current_price} @ {quote.discount_percent}%"
        )

        product.current_price = quote.current_price
        product.discount_percent = quote.discount_percent
        product.updated_at = self.clock.now()
        return PriceChange(
            product=product,
            old_price=old_price,
            old_discount=old_discount,
            days_to_expiry=quote.days_to_expiry,
        )
