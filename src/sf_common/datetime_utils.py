"""UTC datetime utilities."""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def epoch_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return int(time.time() * 1000)
