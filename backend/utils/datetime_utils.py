"""
Datetime utility functions for ledger millisecond timestamps
"""
from datetime import datetime, timezone
from typing import Any, Optional
import logging
import time

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


def parse_timestamp_ms(value: Any) -> Optional[int]:
    """
    Convert a ledger timestamp to epoch milliseconds

    Handles multiple cases:
    - None -> None
    - int / float -> int
    - numeric string (the RPC encodes u64 as strings) -> int
    - Python datetime -> epoch ms
    - Other -> None with warning

    Args:
        value: timestamp as returned by the node or the directory

    Returns:
        Milliseconds since epoch or None
    """
    if value is None:
        return None

    if isinstance(value, bool):
        logger.warning(f"Unexpected boolean timestamp: {value}")
        return None

    if isinstance(value, (int, float)):
        return int(value)

    if isinstance(value, datetime):
        return datetime_to_ms(value)

    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Failed to parse timestamp string: {value}")
            return None

    logger.warning(f"Unknown timestamp type: {type(value)}")
    return None


def datetime_to_ms(dt: datetime) -> int:
    """Epoch milliseconds of a datetime (naive values are taken as UTC)"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)
