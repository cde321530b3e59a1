"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Token expiry calculations
- Timestamp utilities
"""

from datetime import datetime, timedelta
from typing import Optional


def utc_now() -> datetime:
    # Mongo stores millisecond precision, trim so round trips compare equal
    now = datetime.utcnow()
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def expires_in(minutes: int = 0, hours: int = 0, days: int = 0) -> datetime:
    """
    Returns an expiry timestamp relative to now.
    """
    return utc_now() + timedelta(minutes=minutes, hours=hours, days=days)


def is_expired(expires_at: Optional[datetime]) -> bool:
    """
    Checks if an expiry timestamp has passed. Missing values count as expired.
    """
    if not expires_at:
        return True
    return datetime.utcnow() > expires_at


def timestamp_ms(dt: Optional[datetime] = None) -> int:
    """
    Milliseconds since the epoch for ``dt`` (default now), used in file
    names and uniqueness markers.
    """
    dt = dt or datetime.utcnow()
    return int((dt - datetime(1970, 1, 1)).total_seconds() * 1000)
