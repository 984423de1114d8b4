"""
Calendar helpers shared by the scheduler and the SLA evaluator.

All helpers are total: unparseable input yields ``None`` from
``coerce_date`` and callers substitute a safe default instead of raising.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any


def coerce_date(value: Any) -> date | None:
    """
    Best-effort conversion of a record timestamp to a calendar date.

    Accepts ``date``, ``datetime`` (its date part) and ISO-8601 strings
    (``2024-05-01`` or ``2024-05-01T10:30:00Z``).  Anything else,
    including empty strings and garbage, returns ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def add_days(start: date, days: int) -> date:
    """Return ``start`` shifted by ``days`` calendar days."""
    return start + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative if reversed)."""
    return (end - start).days
