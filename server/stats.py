"""
Throughput arithmetic and result dataclasses.

Pure functions and lightweight dataclasses -- no I/O, no side effects.
Everything here is deterministic and easy to unit-test.
"""
from __future__ import annotations

from dataclasses import dataclass

from .constants import MIB


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class MeasurementCancelled(Exception):
    """Raised by a measurement loop when its caller has gone away."""


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class MeasurementResult:
    """Outcome of one fixed-duration measurement loop."""

    bytes_total: int = 0
    duration_ms: float = 0.0
    iterations: int = 0
    speed_mb_s: float = 0.0

    def calculate(self) -> None:
        """Derive MB/s from total bytes and wall-clock duration."""
        self.speed_mb_s = throughput_mb_per_s(self.bytes_total, self.duration_ms / 1000)

    def to_dict(self) -> dict:
        return {
            "bytes_total": self.bytes_total,
            "duration_ms": round(self.duration_ms, 2),
            "iterations": self.iterations,
            "speed_mb_s": round(self.speed_mb_s, 2),
        }


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def throughput_mb_per_s(bytes_moved: int, elapsed_seconds: float) -> float:
    """Megabytes (MiB) per second; 0.0 when no time has elapsed."""
    if elapsed_seconds <= 0:
        return 0.0
    return (bytes_moved / MIB) / elapsed_seconds


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_throughput(speed_mb_s: float) -> str:
    """Human-readable throughput string."""
    if speed_mb_s >= 1024:
        return f"{speed_mb_s / 1024:.2f} GB/s"
    return f"{speed_mb_s:.2f} MB/s"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.0f} ms"
