"""Wall-clock timestamps in the controller's fixed display format."""

import time
from typing import Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def timestamp(ts: Optional[float] = None) -> str:
    """Format an epoch time (default: now) as local YYYY-MM-DD HH:MM:SS."""
    return time.strftime(
        TIMESTAMP_FORMAT, time.localtime(time.time() if ts is None else ts)
    )
