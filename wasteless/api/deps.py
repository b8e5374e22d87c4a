"""
Shared FastAPI dependencies
"""
import asyncio

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from wasteless.database import get_db
from wasteless.services.pricing_engine import PricingEngine
from wasteless.services.signage_service import SignageService
from wasteless.services.stores import SqlHistoryStore, SqlProductStore, SqlRuleStore
from wasteless.utils.clock import Clock, SystemClock


def get_clock(request: Request) -> Clock:
    return getattr(request.app.state, "clock", None) or SystemClock()


def get_recompute_lock(request: Request) -> asyncio.Lock:
    """The app-wide lock shared with the scheduler so bulk runs never overlap"""
    lock = getattr(request.app.state, "recompute_lock", None)
    if lock is None:
        lock = request.app.state.recompute_lock = asyncio.Lock()
    return lock


def build_pricing_engine(db: AsyncSession, clock: Clock, lock: asyncio.Lock) -> PricingEngine:
    return PricingEngine(
        products=SqlProductStore(db),
        rules=SqlRuleStore(db),
        history=SqlHistoryStore(db),
        clock=clock,
        lock=lock,
    )


async def get_pricing_engine(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    lock: asyncio.Lock = Depends(get_recompute_lock),
) -> PricingEngine:
    return build_pricing_engine(db, clock, lock)


async def get_signage_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SignageService:
    return SignageService(db, clock=clock)
