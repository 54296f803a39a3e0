"""
Server-side download measurement.

Repeatedly "transmits" the shared buffer for a fixed wall-clock duration and
reports the bytes moved as MB/s.  There is no throttling; the figure reflects
lock acquisition and memory speed, not network capacity.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from .constants import DEFAULT_TEST_DURATION, PROGRESS_INTERVAL
from .payload import SharedBuffer
from .stats import MeasurementCancelled, MeasurementResult, throughput_mb_per_s

logger = logging.getLogger(__name__)


class DownloadMeasurer:
    """
    Fixed-duration download loop over a :class:`SharedBuffer`.

    Each iteration takes the buffer lock, reads its length, releases the lock
    and adds the length to a running counter.  The loop yields to the event
    loop between iterations so concurrent requests keep being served.
    """

    def __init__(
        self,
        buffer: SharedBuffer,
        duration_seconds: float = DEFAULT_TEST_DURATION,
    ) -> None:
        self.buffer = buffer
        self.duration_seconds = duration_seconds
        self.on_progress: Optional[Callable[[float, float], None]] = None

    async def measure(
        self,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> MeasurementResult:
        result = MeasurementResult()
        total_bytes = 0
        iterations = 0

        start_time = time.perf_counter()
        last_report = start_time
        elapsed = 0.0

        while elapsed < self.duration_seconds:
            total_bytes += await self.buffer.read_length()
            iterations += 1

            await asyncio.sleep(0)
            if should_stop is not None and should_stop():
                logger.info("Download measurement stopped after %d iterations", iterations)
                raise MeasurementCancelled("download measurement cancelled")

            now = time.perf_counter()
            elapsed = now - start_time

            if self.on_progress and now - last_report >= PROGRESS_INTERVAL:
                last_report = now
                self.on_progress(
                    min(elapsed / self.duration_seconds, 1.0),
                    throughput_mb_per_s(total_bytes, elapsed),
                )

        result.duration_ms = elapsed * 1000
        result.bytes_total = total_bytes
        result.iterations = iterations
        result.calculate()

        logger.debug(
            "Download measurement: %d bytes in %.2f s (%.2f MB/s)",
            total_bytes, elapsed, result.speed_mb_s,
        )
        return result
