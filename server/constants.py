"""
Shared constants used across all server modules.

Centralises sizes, durations, and response headers so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

MIB = 1024 * 1024

# ---------------------------------------------------------------------------
# Download sizing (megabytes)
# ---------------------------------------------------------------------------

DEFAULT_SIZE_MB = 10
MAX_SIZE_MB = 100
SIZE_SUFFIX = "MB"

# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

SHARED_BUFFER_SIZE = MIB             # 1 MiB stand-in payload
UPLOAD_CHUNK_SIZE = 512 * 1024       # 512 KiB per simulated upload step

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

DEFAULT_TEST_DURATION = 60.0         # seconds per measurement loop
MIN_TEST_DURATION = 0.01
MAX_TEST_DURATION = 600.0
PROBE_DELAY = 0.001                  # 1 ms artificial delay
PROGRESS_INTERVAL = 0.25             # seconds between progress callbacks

# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
MIN_PORT = 1
MAX_PORT = 65535
DEFAULT_STATIC_DIR = "static"

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

NO_CACHE_HEADERS = {
    "Content-Type": "application/octet-stream",
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

# JSON byte arrays cost several characters per byte on the wire.
MAX_REQUEST_BODY = 256 * MIB
