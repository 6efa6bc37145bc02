"""Server health utilities.

Provides a simple `get_health` function returning server status,
start time, uptime in seconds and the active storage backend.
"""
from datetime import datetime, timezone
from typing import Optional
import time

# record process start time at import
_START_TIME = time.time()


def get_health(storage_backend: Optional[str] = None) -> dict:
    """Return a dict representing server health.

    Fields:
    - status: 'ok' or 'error'
    - start_time: ISO 8601 UTC timestamp when the process started
    - uptime_seconds: integer seconds since start
    - storage_backend: tag of the active backend, None if no provider
    """
    now = time.time()
    uptime = int(now - _START_TIME)
    start_dt = datetime.fromtimestamp(_START_TIME, tz=timezone.utc)
    return {
        "status": "ok",
        "start_time": start_dt.isoformat(),
        "uptime_seconds": uptime,
        "storage_backend": storage_backend,
    }
