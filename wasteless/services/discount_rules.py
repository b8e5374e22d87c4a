"""
Discount rule resolution.

A category's rules form a staircase of ``(threshold, percent)`` steps keyed by
days remaining. The applicable step is the one with the smallest threshold
that is still >= the product's days-to-expiry. Products with no matching step
(no rules for the category, or more days left than every threshold) fall back
to DEFAULT_LADDER.
"""
from typing import Iterable, Sequence, Tuple

from wasteless.exceptions import ValidationError
from wasteless.services.stores import RuleStore

Rule = Tuple[int, int]  # (days_to_expiry threshold, discount_percent)

# Seeded for every newly created category
DEFAULT_CATEGORY_RULES: Sequence[Rule] = (
    (5, 0),
    (4, 15),
    (3, 15),
    (2, 30),
    (1, 50),
    (0, 70),
)

# Short-shelf-life categories get a shorter staircase at bootstrap
SHORT_SHELF_LIFE_RULES: Sequence[Rule] = (
    (3, 0),
    (2, 30),
    (1, 50),
    (0, 70),
)


def default_ladder(days_to_expiry: int) -> int:
    """Discount used when no configured rule applies"""
    if days_to_expiry >= 5:
        return 0
    if days_to_expiry >= 3:
        return 15
    if days_to_expiry == 2:
        return 30
    if days_to_expiry == 1:
        return 50
    return 70


def _check_percent(percent: int) -> int:
    if not (0 <= percent <= 100):
        raise ValidationError(
            f"Pricing rule discount {percent} is outside 0-100",
            {"discount_percent": percent},
        )
    return percent


def resolve_discount(rules: Iterable[Rule], days_to_expiry: int) -> int:
    """Pick the first rule, by ascending threshold, whose threshold >= days_to_expiry"""
    if days_to_expiry < 0:
        raise ValidationError("days_to_expiry cannot be negative", {"days_to_expiry": days_to_expiry})

    for threshold, percent in sorted(rules, key=lambda rule: rule[0]):
        if threshold >= days_to_expiry:
            return _check_percent(percent)

    return default_ladder(days_to_expiry)


def staircase(rules: Iterable[Rule], max_days: int) -> dict[int, int]:
    """Resolved discount for every day from 0 to max_days, e.g. for rule previews"""
    rules = list(rules)
    return {days: resolve_discount(rules, days) for days in range(max_days + 1)}


class DiscountRuleResolver:
    """Resolves discounts against the rules held in a RuleStore"""

    def __init__(self, rule_store: RuleStore):
        self.rule_store = rule_store

    async def resolve(self, category: str, days_to_expiry: int) -> int:
        rules = await self.rule_store.rules_for(category)
        return resolve_discount(rules, days_to_expiry)
