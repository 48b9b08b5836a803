# -*- coding: utf-8 -*-
"""Month projection shared by the Record Store and the Local Cache.

Both sides select with the same date prefix and order with the same key, so a
month computed remotely and one recomputed from the cache are identical for
identical data.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from ..errors import ValidationFailure
from .models import Record, RecordsByDate, check_calendar_date


def month_prefix(year: int, month: int) -> str:
    """``(2024, 3)`` -> ``"2024-03-"``. Month is 1-indexed."""
    if not 1 <= int(year) <= 9999:
        raise ValidationFailure(f"year out of range: {year}")
    if not 1 <= int(month) <= 12:
        raise ValidationFailure(f"month out of range: {month}")
    return f"{int(year):04d}-{int(month):02d}-"


def created_order_key(record: Record) -> Tuple[str, str]:
    # createdAt is normalized to a fixed-width UTC string; id breaks ties.
    return (record.created_at, record.id)


def sort_newest_first(records: Iterable[Record]) -> List[Record]:
    return sorted(records, key=created_order_key, reverse=True)


def group_by_date(ordered: Iterable[Record]) -> RecordsByDate:
    """Group already-ordered records by exact date, keeping their order."""
    out: RecordsByDate = {}
    for record in ordered:
        out.setdefault(record.date, []).append(record)
    return {day: out[day] for day in sorted(out)}


def project_month(records: Iterable[Record], year: int, month: int) -> RecordsByDate:
    prefix = month_prefix(year, month)
    selected = [r for r in records if r.date.startswith(prefix)]
    return group_by_date(sorted(selected, key=created_order_key))


def project_day(records: Iterable[Record], date: str) -> List[Record]:
    """Records of one exact date, oldest first (the detail view of a day)."""
    try:
        check_calendar_date(date)
    except ValueError as exc:
        raise ValidationFailure(str(exc)) from exc
    return sorted((r for r in records if r.date == date), key=created_order_key)
