# messaging_api/core/_datetime_serializer.py
from datetime import datetime, timezone


def serialize_dt(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    # stored values are naive UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
