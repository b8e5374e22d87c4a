"""
PricingEngine tests over in-memory stores
"""
import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from wasteless.exceptions import StoreError, ValidationError
from wasteless.services.pricing_engine import PricingEngine
from wasteless.tests.fakes import (
    TODAY, InMemoryHistoryStore, InMemoryProductStore, product_record,
)
from wasteless.utils.clock import FixedClock, SystemClock


# ===================== PRICE FOR =====================


class TestPriceFor:

    async def test_vegetables_two_days(self, build_engine):
        engine = build_engine()
        quote = await engine.price_for("12.90", "vegetables", TODAY + timedelta(days=2))
        assert quote.discount_percent == 30
        assert quote.current_price == Decimal("9.03")
        assert quote.days_to_expiry == 2

    async def test_fruits_expiring_today(self, build_engine):
        engine = build_engine()
        quote = await engine.price_for(19.90, "fruits", TODAY)
        assert quote.discount_percent == 70
        assert quote.current_price == Decimal("5.97")

    async def test_category_without_rules_uses_ladder(self, build_engine):
        engine = build_engine()
        quote = await engine.price_for("10.00", "bakery", TODAY + timedelta(days=4))
        assert quote.discount_percent == 15
        assert quote.current_price == Decimal("8.50")

    async def test_expired_product_gets_max_discount(self, build_engine):
        engine = build_engine()
        quote = await engine.price_for("10.00", "vegetables", TODAY - timedelta(days=3))
        assert quote.days_to_expiry == 0
        assert quote.discount_percent == 70

    async def test_explicit_today_overrides_clock(self, build_engine):
        engine = build_engine()
        quote = await engine.price_for("10.00", "vegetables", "2026-03-20", today="2026-03-19")
        assert quote.days_to_expiry == 1
        assert quote.discount_percent == 50

    async def test_writes_nothing(self, build_engine):
        engine = build_engine()
        await engine.price_for("10.00", "vegetables", TODAY)
        assert engine.products.updates == []
        assert engine.history.entries == []

    async def test_negative_base_price(self, build_engine):
        engine = build_engine()
        with pytest.raises(ValidationError):
            await engine.price_for(-5, "vegetables", TODAY)

    def test_defaults_to_system_clock(self, rule_store):
        engine = PricingEngine(InMemoryProductStore(), rule_store, InMemoryHistoryStore())
        assert isinstance(engine.clock, SystemClock)
        assert isinstance(engine.lock, asyncio.Lock)


# ===================== RECOMPUTE ALL =====================


class TestRecomputeAll:

    async def test_changes_only_products_that_moved(self, build_engine):
        engine = build_engine([
            product_record(1, base_price="12.90", days_left=2),
            product_record(2, base_price="8.00", days_left=10),
            product_record(3, category="fruits", base_price="19.90", days_left=0),
        ])

        changes = await engine.recompute_all()

        assert sorted(c.product.id for c in changes) == [1, 3]
        assert [pid for pid, _ in engine.products.updates] == [1, 3]

        by_id = {c.product.id: c for c in changes}
        assert by_id[1].product.current_price == Decimal("9.03")
        assert by_id[1].product.discount_percent == 30
        assert by_id[1].old_price == Decimal("12.90")
        assert by_id[1].old_discount == 0
        assert by_id[1].days_to_expiry == 2

        fruit = engine.products.products[3]
        assert fruit.discount_percent == 70
        assert fruit.current_price == Decimal("5.97")

    async def test_history_entry_per_change(self, build_engine):
        engine = build_engine([product_record(1, base_price="12.90", days_left=2)])
        await engine.recompute_all()

        assert engine.history.entries == [{
            "product_id": 1,
            "old_price": Decimal("12.90"),
            "new_price": Decimal("9.03"),
            "old_discount": 0,
            "new_discount": 30,
            "reason": "Auto-update: 2 days to expiry",
        }]

    async def test_second_run_is_a_no_op(self, build_engine):
        engine = build_engine([
            product_record(1, days_left=0),
            product_record(2, days_left=1),
            product_record(3, category="herbs", days_left=4),
        ])
        first = await engine.recompute_all()
        second = await engine.recompute_all()

        assert len(first) == 3
        assert second == []
        assert len(engine.history.entries) == 3

    async def test_price_drift_is_corrected_at_same_discount(self, build_engine):
        # discount already right but price stale, e.g. base price edited in the database
        engine = build_engine([
            product_record(1, base_price="20.00", current_price="9.03", discount_percent=30, days_left=2),
        ])
        changes = await engine.recompute_all()

        assert len(changes) == 1
        assert changes[0].product.current_price == Decimal("14.00")
        assert engine.history.entries[0]["old_discount"] == 30
        assert engine.history.entries[0]["new_discount"] == 30

    async def test_discount_rises_as_clock_advances(self, build_engine):
        engine = build_engine([product_record(1, base_price="10.00", days_left=3)])
        await engine.recompute_all()
        assert engine.products.products[1].discount_percent == 15

        engine.clock.advance(timedelta(days=1))
        changes = await engine.recompute_all()

        assert len(changes) == 1
        assert changes[0].product.discount_percent == 30
        assert changes[0].old_discount == 15
        assert engine.history.entries[-1]["reason"] == "Auto-update: 2 days to expiry"

    async def test_explicit_date(self, build_engine):
        engine = build_engine([product_record(1, base_price="10.00", days_left=5)])
        changes = await engine.recompute_all(today=TODAY + timedelta(days=5))
        assert changes[0].product.discount_percent == 70

    async def test_change_report_shape(self, build_engine):
        engine = build_engine([product_record(1, base_price="12.90", days_left=2)])
        data = (await engine.recompute_all())[0].to_dict()

        assert data["id"] == 1
        assert data["old_price"] == Decimal("12.90")
        assert data["old_discount"] == 0
        assert data["days_to_expiry"] == 2
        assert data["current_price"] == Decimal("9.03")
        assert data["expiry_date"] == TODAY + timedelta(days=2)

    async def test_changed_record_carries_update_time(self, build_engine):
        engine = build_engine([
            product_record(1, base_price="12.90", days_left=2),
            product_record(2, base_price="8.00", days_left=10),
        ])
        engine.clock.advance(timedelta(hours=9, minutes=30))

        [change] = await engine.recompute_all()

        assert change.product.updated_at == engine.clock.now()
        assert change.to_dict()["updated_at"] == engine.clock.now()
        assert engine.products.products[2].updated_at is None

    async def test_empty_store(self, build_engine):
        assert await build_engine().recompute_all() == []

    async def test_store_failure_aborts_and_keeps_earlier_writes(self, build_engine):
        engine = build_engine([
            product_record(1, days_left=0),
            product_record(2, days_left=0),
            product_record(3, days_left=0),
        ])
        engine.products.fail_on_update.add(2)

        with pytest.raises(StoreError):
            await engine.recompute_all()

        assert [pid for pid, _ in engine.products.updates] == [1]
        assert [e["product_id"] for e in engine.history.entries] == [1]
        # price and discount of the failed product are untouched together
        failed = engine.products.products[2]
        assert (failed.current_price, failed.discount_percent) == (Decimal("10.00"), 0)
        assert not engine.lock.locked()

    async def test_concurrent_runs_sharing_a_lock_do_not_interleave(self, rule_store):
        products = InMemoryProductStore([product_record(i, days_left=i % 4) for i in range(1, 9)])
        history = InMemoryHistoryStore()
        lock = asyncio.Lock()
        clock = FixedClock(TODAY)
        scheduled = PricingEngine(products, rule_store, history, clock=clock, lock=lock)
        manual = PricingEngine(products, rule_store, history, clock=clock, lock=lock)

        first, second = await asyncio.gather(scheduled.recompute_all(), manual.recompute_all())

        assert len(first) + len(second) == 8
        assert len(history.entries) == 8
        assert len(products.updates) == 8
