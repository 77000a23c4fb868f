"""
Polling scheduler.

Starts one tick per interval until the stop event is set. A tick that is
still running when the next one is due causes that next tick to be
skipped. Stopping never interrupts a running tick; it is awaited before
run() returns.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from tsetmc_excel.schemas.market import BatchResult
from tsetmc_excel.services.batch.orchestrator import BatchOrchestrator

logger = logging.getLogger(__name__)


class Poller:
    """Drives BatchOrchestrator.run_tick on a fixed interval."""

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        interval: float,
        on_result: Optional[Callable[[BatchResult], None]] = None,
    ):
        self._orchestrator = orchestrator
        self._interval = interval
        self._on_result = on_result
        self._current: Optional[asyncio.Task] = None
        self.ticks_started = 0
        self.ticks_skipped = 0

    async def run(self, stop_event: asyncio.Event) -> None:
        counter = 0
        while not stop_event.is_set():
            counter += 1

            if self._current is not None and not self._current.done():
                self.ticks_skipped += 1
                logger.warning(f"#{counter} skipped: previous tick is still running")
            else:
                logger.info(f"#{counter} Started at {datetime.now().strftime('%H:%M:%S')}")
                self.ticks_started += 1
                self._current = asyncio.create_task(self._tick(counter))

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

        if self._current is not None and not self._current.done():
            logger.info("Waiting for the running tick to finish...")
            await self._current

        logger.info("Data fetching stopped.")

    async def _tick(self, counter: int) -> Optional[BatchResult]:
        try:
            result = await self._orchestrator.run_tick(counter)
            logger.debug(
                f"#{counter} {result.outcome.value}: batch {result.batch_id}, "
                f"{result.instruments_received}/{result.instruments_expected} instruments, "
                f"{result.latency_ms}ms"
            )
            if self._on_result is not None:
                self._on_result(result)
        except Exception as e:
            logger.exception(f"#{counter} failed: {e}")
            return None
        return result
