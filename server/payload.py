"""
Synthetic payloads: download bodies, the shared stand-in buffer, and
``size`` query parsing.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from .constants import DEFAULT_SIZE_MB, MAX_SIZE_MB, MIB, SHARED_BUFFER_SIZE, SIZE_SUFFIX


# ---------------------------------------------------------------------------
# Size parameter
# ---------------------------------------------------------------------------

def parse_size(
    raw: Optional[str],
    default: int = DEFAULT_SIZE_MB,
    maximum: int = MAX_SIZE_MB,
) -> int:
    """
    Turn a ``size`` query value such as ``"25"`` or ``"25MB"`` into megabytes.

    Absent or unparsable values give *default*; anything above *maximum* is
    clamped.  There is no lower clamp, so ``"0"`` yields 0.
    """
    if raw is None:
        return default

    text = raw.replace(SIZE_SUFFIX, "")
    # Unsigned: reject signs and anything that isn't plain digits.
    if not text.isdigit() or not text.isascii():
        return default

    # More digits than the maximum has means it is above the maximum.
    digits = text.lstrip("0") or "0"
    if len(digits) > len(str(maximum)):
        return maximum

    return min(int(digits), maximum)


def generate_payload(size_mb: int) -> bytes:
    """Zero-filled body of exactly ``size_mb`` MiB."""
    return bytes(size_mb * MIB)


# ---------------------------------------------------------------------------
# Shared buffer
# ---------------------------------------------------------------------------

class SharedBuffer:
    """
    Process-wide byte region used as the download simulation's payload.

    Created once at startup and never written afterwards.  Access still goes
    through an ``asyncio.Lock`` so every reader follows the same discipline
    should a writer ever be added.
    """

    def __init__(self, size: int = SHARED_BUFFER_SIZE) -> None:
        self._data = bytes(size)
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._data)

    async def read_length(self) -> int:
        """Length of the buffer, read under the lock."""
        async with self._lock:
            return len(self._data)
