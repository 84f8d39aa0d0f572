# messaging_api/core/clock.py
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    # naive UTC, same representation on PostgreSQL and SQLite columns
    return datetime.now(timezone.utc).replace(tzinfo=None)
