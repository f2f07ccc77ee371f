from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

from dateutil import parser as date_parser


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp; SQLite returns UTC text, Postgres a datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = date_parser.parse(text)
        except (ValueError, OverflowError):
            return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def format_timestamp(value: Any) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return str(value or "")
    return parsed.astimezone(UTC).strftime("%b %d, %H:%M:%S UTC")


def format_event_date(value: Any) -> str:
    """'2026-03-10' -> 'Tue, Mar 10 2026'; unparseable text is returned as-is."""
    if value is None:
        return ""
    if isinstance(value, date):
        return value.strftime("%a, %b %d %Y")
    text = str(value).strip()
    try:
        return date_parser.parse(text).strftime("%a, %b %d %Y")
    except (ValueError, OverflowError):
        return text
