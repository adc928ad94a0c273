"""
Date parsing shared by extract ingestion and date-range resolution.

Extract files carry US-style dates ("MM/DD/YY" or "MM/DD/YYYY"); the record
store carries ISO dates. Anything that cannot be parsed becomes None so that
callers can fall back to base rates instead of failing.
"""

from datetime import date, datetime

TWO_DIGIT_YEAR_PIVOT = 50


def parse_date(value) -> date | None:
    """Parse a date from a date, datetime, ISO string or US-format string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    parts = [p.strip() for p in text.split("/")]
    if len(parts) == 3:
        return _parse_us_parts(parts)

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _parse_us_parts(parts: list[str]) -> date | None:
    try:
        month, day, year = (int(p) for p in parts)
    except ValueError:
        return None

    # Two-digit years: 00-49 => 20YY, 50-99 => 19YY
    if year < TWO_DIGIT_YEAR_PIVOT:
        year += 2000
    elif year < 100:
        year += 1900

    try:
        return date(year, month, day)
    except ValueError:
        return None


def to_iso(value: date | None) -> str | None:
    return value.isoformat() if value else None
