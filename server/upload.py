"""
Upload payload parsing and the simulated server-side upload measurement.

Real upload throughput is timed by the client around ``POST /api/upload``.
:class:`UploadMeasurer` exists only to fill the combined result: it adds a
constant chunk size per iteration without moving any data.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from .constants import DEFAULT_TEST_DURATION, PROGRESS_INTERVAL, UPLOAD_CHUNK_SIZE
from .stats import MeasurementCancelled, MeasurementResult, throughput_mb_per_s

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------

@dataclass
class UploadPayload:
    """Body of ``POST /api/upload``.  Only its length is ever looked at."""

    data: Sequence[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, body: Any) -> UploadPayload:
        """
        Build from decoded JSON of the form ``{"data": [0, 255, ...]}``.

        Raises ``ValueError`` if the shape is wrong or an item is not a byte.
        """
        if not isinstance(body, dict) or "data" not in body:
            raise ValueError("expected an object with a 'data' field")

        data = body["data"]
        if not isinstance(data, list):
            raise ValueError("'data' must be an array of bytes")
        for item in data:
            # bool is an int subclass; JSON true/false is not a byte.
            if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 255:
                raise ValueError("'data' items must be integers in 0..255")

        return cls(data=data)

    @classmethod
    def from_bytes(cls, raw: bytes) -> UploadPayload:
        return cls(data=raw)

    def __len__(self) -> int:
        return len(self.data)


# ---------------------------------------------------------------------------
# Measurer
# ---------------------------------------------------------------------------

class UploadMeasurer:
    """Fixed-duration simulated upload loop."""

    def __init__(
        self,
        chunk_size: int = UPLOAD_CHUNK_SIZE,
        duration_seconds: float = DEFAULT_TEST_DURATION,
    ) -> None:
        self.chunk_size = chunk_size
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
            total_bytes += self.chunk_size
            iterations += 1

            await asyncio.sleep(0)
            if should_stop is not None and should_stop():
                logger.info("Upload measurement stopped after %d iterations", iterations)
                raise MeasurementCancelled("upload measurement cancelled")

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
            "Upload measurement: %d bytes in %.2f s (%.2f MB/s)",
            total_bytes, elapsed, result.speed_mb_s,
        )
        return result
