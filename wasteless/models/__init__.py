from wasteless.models.product import Product, PriceHistory
from wasteless.models.category import Category, PricingRule
from wasteless.models.signage_event import SignageEvent

__all__ = [
    "Product",
    "PriceHistory",
    "Category",
    "PricingRule",
    "SignageEvent",
]
