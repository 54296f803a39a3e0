"""
The four-field result record returned by every JSON endpoint.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


def utc_timestamp() -> str:
    """Current time as an RFC 3339 / ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SpeedTestResult:
    """Download / upload speed in MB/s, latency in ms, and when it was taken."""

    download_speed: float = 0.0
    upload_speed: float = 0.0
    latency: int = 0
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "download_speed": self.download_speed,
            "upload_speed": self.upload_speed,
            "latency": self.latency,
            "timestamp": self.timestamp,
        }


def assemble_result(
    download_speed: float = 0.0,
    upload_speed: float = 0.0,
    latency: int = 0,
) -> SpeedTestResult:
    """Build a result stamped with the current time."""
    return SpeedTestResult(
        download_speed=float(download_speed),
        upload_speed=float(upload_speed),
        latency=max(int(latency), 0),
        timestamp=utc_timestamp(),
    )
