"""Periodic sweep over the configured board/PON range feeding the metrics collector."""

from __future__ import annotations

import asyncio
import time

from loguru import logger

from oltmon.acquisition.models import TerminalDetail
from oltmon.acquisition.service import AcquisitionService
from oltmon.config import ScanRange
from oltmon.exceptions import OltError
from oltmon.exporter.metrics import OnuMetrics, SweepStats


class SweepScheduler:
    """Long-lived task: sweep, publish, wait ``interval`` seconds, repeat.

    A stop request is honoured between sweeps; a sweep in progress always
    completes and publishes.
    """

    def __init__(
        self,
        service: AcquisitionService,
        metrics: OnuMetrics,
        scan: ScanRange | None = None,
        interval: float = 30.0,
    ) -> None:
        self.service = service
        self.metrics = metrics
        self.scan = scan or ScanRange()
        self.interval = interval
        self.cycles = 0
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    async def run_once(self) -> list[TerminalDetail]:
        """One full sweep. Failing ports and ONUs are logged and skipped."""
        started = time.monotonic()
        details: list[TerminalDetail] = []
        errors = 0

        logger.info(
            f"Starting ONU sweep boards {self.scan.board_min}-{self.scan.board_max} "
            f"pons {self.scan.pon_min}-{self.scan.pon_max}"
        )
        for board, pon in self.scan.coordinates():
            try:
                summaries = await self.service.list_port(board, pon)
            except OltError as e:
                logger.warning(f"Skipping board {board} pon {pon}: {e}")
                errors += 1
                continue

            for summary in summaries:
                try:
                    details.append(await self.service.get_terminal(board, pon, summary.onu_id))
                except OltError as e:
                    logger.warning(f"Skipping ONU {board}/{pon}/{summary.onu_id}: {e}")
                    errors += 1

        stats = SweepStats(duration=time.monotonic() - started, terminals=len(details), errors=errors)
        self.metrics.publish(details, stats)
        self.cycles += 1
        logger.info(f"Finished ONU sweep: {stats.terminals} ONUs, {stats.errors} skipped, {stats.duration:.1f}s")
        return details

    async def run(self) -> None:
        while not self._stop.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("ONU sweep aborted")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info(f"Sweep scheduler stopped after {self.cycles} cycles")

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="onu-sweep")
        return self._task

    def request_stop(self) -> None:
        self._stop.set()

    async def stop(self) -> None:
        """Request a stop and wait for the running sweep (if any) to finish."""
        self.request_stop()
        if self._task is not None:
            await self._task
            self._task = None
