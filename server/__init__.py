"""Speedtest server library -- payloads, measurement loops, and the aiohttp app."""

from .app import create_app
from .download import DownloadMeasurer
from .latency import LatencyProbe
from .payload import SharedBuffer, generate_payload, parse_size
from .result import SpeedTestResult, assemble_result, utc_timestamp
from .stats import (
    MeasurementCancelled,
    MeasurementResult,
    format_latency,
    format_throughput,
    throughput_mb_per_s,
)
from .upload import UploadMeasurer, UploadPayload

__all__ = [
    "DownloadMeasurer",
    "LatencyProbe",
    "MeasurementCancelled",
    "MeasurementResult",
    "SharedBuffer",
    "SpeedTestResult",
    "UploadMeasurer",
    "UploadPayload",
    "assemble_result",
    "create_app",
    "format_latency",
    "format_throughput",
    "generate_payload",
    "parse_size",
    "throughput_mb_per_s",
    "utc_timestamp",
]
