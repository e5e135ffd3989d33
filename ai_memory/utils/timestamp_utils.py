"""
Timestamp and identifier utilities for consistent time handling across the system.
"""

import random
import string
import time
from datetime import datetime, timezone
from typing import Optional

_BASE36 = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    """Encode a non-negative integer in base 36 (lowercase)."""
    if number < 0:
        raise ValueError('number must be non-negative')
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return ''.join(reversed(digits))


def iso_now() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def generate_memory_id(timestamp: Optional[float] = None) -> str:
    """Build a memory id from the millisecond timestamp plus a random suffix.

    Args:
        timestamp: Unix timestamp in seconds (optional, uses current time if None)

    Returns:
        Lowercase base36 identifier
    """
    if timestamp is None:
        timestamp = time.time()
    suffix = ''.join(random.choices(_BASE36, k=11))
    return to_base36(int(timestamp * 1000)) + suffix
