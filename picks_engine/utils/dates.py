"""
Date utilities for the Daily Picks Engine.

Card dates are Eastern-time calendar days (YYYY-MM-DD); game start times
are timezone-aware datetimes.
"""

from datetime import datetime, date, timezone
from typing import Optional
import pytz


# US sports schedules run on Eastern time
EASTERN_TZ = pytz.timezone('US/Eastern')


def get_eastern_now() -> datetime:
    """Get current datetime in Eastern timezone."""
    return datetime.now(EASTERN_TZ)


def get_eastern_date() -> date:
    """Get current date in Eastern timezone."""
    return get_eastern_now().date()


def get_today_str() -> str:
    """Today's card date as YYYY-MM-DD (Eastern)."""
    return format_date(get_eastern_date())


def parse_date(date_str: str) -> date:
    """
    Parse a date string in various formats.

    Supported formats:
    - YYYY-MM-DD
    - YYYYMMDD
    - MM/DD/YYYY

    Raises:
        ValueError: If date string cannot be parsed
    """
    formats = [
        "%Y-%m-%d",
        "%Y%m%d",
        "%m/%d/%Y",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    raise ValueError(f"Cannot parse date: {date_str}. Use YYYY-MM-DD format.")


def format_date(d: date, fmt: str = "%Y-%m-%d") -> str:
    """Format a date object to string."""
    return d.strftime(fmt)


def to_compact_date(date_str: str) -> str:
    """YYYY-MM-DD -> YYYYMMDD, the form scoreboard APIs and slate ids use."""
    return format_date(parse_date(date_str), "%Y%m%d")


def parse_game_time(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 game start time into an aware UTC datetime.

    Accepts trailing 'Z', minute-precision ESPN times ("2025-01-15T00:30Z"),
    and aware or naive datetimes (naive is taken as UTC).

    Returns:
        datetime in UTC, or None if value is empty or unparseable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_game_time(dt: Optional[datetime]) -> Optional[str]:
    """Aware datetime -> ISO string in UTC with a trailing Z."""
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
