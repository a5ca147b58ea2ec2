"""
Small conversion helpers shared by the storage classes.
"""
from datetime import datetime, timezone
from typing import Optional, Union


def to_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Normalize a timestamp read from the database to an aware UTC datetime.

    SQLite hands back ISO strings for raw SQL queries while PostgreSQL
    returns datetime objects; both end up as aware datetimes.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for a bound SQL parameter (ISO 8601, UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()
