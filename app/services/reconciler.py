import asyncio

from loguru import logger

from app.core.config import settings
from app.services.aggregation import ProfileAggregationService, aggregation_service


class ReconciliationSweep:
    """
    Periodically recalculates every group profile.

    Repairs cache entries whose triggering event was dropped or whose
    recalculation failed.
    """

    def __init__(self, aggregation: ProfileAggregationService, interval_seconds: int | None = None):
        self.aggregation = aggregation
        self.interval_seconds = (
            settings.RECONCILE_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self._task: asyncio.Task | None = None

    @property
    def enabled(self) -> bool:
        return self.interval_seconds > 0

    async def run_once(self) -> None:
        try:
            await self.aggregation.reconcile_all()
        except Exception as e:
            logger.exception(f"Reconciliation sweep failed: {e}")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()

    def start(self) -> None:
        if not self.enabled:
            logger.info("Reconciliation sweep disabled")
            return
        if self._task is None:
            self._task = asyncio.create_task(self._loop())
            logger.info(f"Reconciliation sweep scheduled every {self.interval_seconds} seconds")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None


reconciliation_sweep = ReconciliationSweep(aggregation_service)
