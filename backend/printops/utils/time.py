"""Time Utilities - UTC timestamps and calendar math

All persisted timestamps are naive UTC datetimes, which is what pymongo
hands back by default.
"""
from datetime import datetime, timezone, timedelta
from typing import Optional
from dateutil import parser as date_parser, tz
from dateutil.relativedelta import relativedelta


def utc_now() -> datetime:
    """Get current UTC datetime (naive, millisecond precision like BSON dates)"""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC"""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Args:
        dt: Datetime object (naive values are treated as UTC)

    Returns:
        ISO formatted string with Z suffix for UTC
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def parse_iso(value: str, default_tz: Optional[str] = None) -> Optional[datetime]:
    """
    Parse ISO 8601 string to naive UTC datetime

    Args:
        value: ISO 8601 string
        default_tz: IANA zone applied when the string carries no offset

    Returns:
        Datetime, or None if the value cannot be parsed
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None and default_tz:
        zone = tz.gettz(default_tz)
        if zone is not None:
            dt = dt.replace(tzinfo=zone)
    dt = to_naive_utc(dt)
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def is_known_timezone(name: str) -> bool:
    """Check an IANA zone name resolves"""
    return bool(name) and tz.gettz(name) is not None


def add_minutes(dt: datetime, minutes: int) -> datetime:
    """Add minutes to datetime"""
    return dt + timedelta(minutes=minutes)


def add_period(dt: datetime, repeat: str) -> Optional[datetime]:
    """
    Advance a datetime by one repeat period

    Args:
        dt: Anchor datetime
        repeat: "daily", "weekly" or "monthly"

    Returns:
        Next occurrence, or None for non-repeating values
    """
    if repeat == "daily":
        return dt + timedelta(days=1)
    if repeat == "weekly":
        return dt + timedelta(days=7)
    if repeat == "monthly":
        # Calendar month; Jan 31 -> Feb 28/29
        return dt + relativedelta(months=1)
    return None
