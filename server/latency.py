"""
Latency probe.

Times a minimal ``asyncio.sleep`` so the figure includes one scheduling
round-trip through the event loop.  Scheduler jitter makes the result at
least the nominal delay, often more; neither case is an error.
"""
from __future__ import annotations

import asyncio
import time

from .constants import PROBE_DELAY


class LatencyProbe:
    """Measure elapsed milliseconds around a fixed artificial delay."""

    def __init__(self, delay_seconds: float = PROBE_DELAY) -> None:
        self.delay_seconds = delay_seconds

    async def measure(self) -> int:
        start = time.perf_counter()
        await asyncio.sleep(self.delay_seconds)
        elapsed_ms = (time.perf_counter() - start) * 1000
        return max(int(elapsed_ms), 0)
