"""
Background price update scheduler.

Runs a bulk recompute immediately on start and then every
PRICE_UPDATE_INTERVAL_MIN minutes; after each run it hands over to the
display sync (signage push) whether or not any price changed, so the
displays keep a fresh heartbeat.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from wasteless.exceptions import ValidationError

logger = logging.getLogger(__name__)

RecomputeFn = Callable[[], Awaitable[Sequence[Any]]]
DisplaySyncFn = Callable[[], Awaitable[dict]]


class PriceUpdateScheduler:

    def __init__(
        self,
        recompute: RecomputeFn,
        display_sync: DisplaySyncFn,
        interval_minutes: float,
    ):
        if interval_minutes < 1:
            raise ValidationError(
                "Price update interval must be at least 1 minute",
                {"interval_minutes": interval_minutes},
            )
        self.recompute = recompute
        self.display_sync = display_sync
        self.interval_seconds = interval_minutes * 60
        self._task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Event] = None
        self.last_result: Optional[dict] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> dict:
        """One recompute + display sync. Recompute errors propagate to the caller."""
        changed = await self.recompute()
        if changed:
            logger.info(f"Updated {len(changed)} products")
        else:
            logger.info("No price changes needed")

        try:
            sync_result = await self.display_sync()
        except Exception as e:
            logger.error(f"Display sync error: {e}")
            sync_result = {"success": False, "message": str(e)}

        if sync_result.get("success"):
            logger.info("Signage displays updated")
        else:
            logger.warning(f"Signage update: {sync_result.get('message')}")

        self.last_result = {"updated_products": changed, "signage_result": sync_result}
        return self.last_result

    async def _tick(self) -> None:
        try:
            await self.run_once()
        except Exception as e:
            logger.error(f"Price update error: {e}")

    async def _loop(self, stopping: asyncio.Event) -> None:
        while not stopping.is_set():
            await self._tick()
            try:
                await asyncio.wait_for(stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        """Start ticking; no-op while a loop is running or still stopping"""
        if self.is_running:
            return
        # one stop event per loop
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stopping), name="price-update-scheduler")
        logger.info(f"Auto-update interval: {self.interval_seconds / 60:g} minutes")

    async def stop(self) -> None:
        """Stop future ticks; a run already in progress is allowed to finish"""
        task = self._task
        if task is None:
            return
        self._stopping.set()
        try:
            await task
        finally:
            if self._task is task:
                self._task = None
        logger.info("Price update scheduler stopped")
