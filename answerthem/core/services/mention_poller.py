"""Background task that periodically runs mention ingestion."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging

from answerthem.core.models import IngestionReport

logger = logging.getLogger(__name__)


class MentionPoller:
    """Calls ``ingest`` every ``interval_seconds`` until stopped.

    A failing pass is logged and the loop simply waits for the next interval;
    the only way to end the loop is ``stop()``.
    """

    def __init__(
        self,
        ingest: Callable[[], Awaitable[IngestionReport]],
        interval_seconds: float,
    ) -> None:
        self._ingest = ingest
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None
        self.completed_passes: int = 0

    def start(self) -> None:
        if self.is_running():
            logger.warning("Mention poller already running")
            return
        self._task = asyncio.create_task(self._run(), name="mention_poller")
        self._task.add_done_callback(self._on_done)
        logger.info("Mention poller started (interval: %ss)", self._interval)

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> IngestionReport | None:
        """Run a single pass, logging instead of raising on failure."""
        try:
            return await self._ingest()
        except Exception:
            logger.exception("Error in mentions polling")
            return None
        finally:
            self.completed_passes += 1

    async def _run(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Mention poller stopped")

    @staticmethod
    def _on_done(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Mention poller exited unexpectedly: %s", task.exception())
