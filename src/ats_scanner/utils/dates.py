"""Date parsing for résumé experience ranges."""

from __future__ import annotations

import re
from datetime import date

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

PRESENT_WORDS = ("present", "current", "now", "today", "현재")

_ISO = re.compile(r"^(\d{4})[-./](\d{1,2})(?:[-./]\d{1,2})?")
_MONTH_FIRST = re.compile(r"^(\d{1,2})[/.-](\d{4})$")
_NAMED = re.compile(r"^([a-z]{3,9})\.?,?\s+(\d{4})$")
_YEAR = re.compile(r"^(\d{4})$")


def parse_month(value: str | None) -> tuple[int, int] | None:
    """Parse a résumé date into (year, month); None when unrecognized.

    Accepts ``2021-06``, ``2021-06-15``, ``2021.06``, ``06/2021``,
    ``Jun 2021``, ``June 2021`` and bare ``2021`` (January).
    """
    if not value:
        return None
    text = value.strip().lower()
    iso = _ISO.match(text)
    month_first = _MONTH_FIRST.match(text)
    named = _NAMED.match(text)
    year_only = _YEAR.match(text)
    if iso:
        year, month = int(iso.group(1)), int(iso.group(2))
    elif month_first:
        month, year = int(month_first.group(1)), int(month_first.group(2))
    elif named:
        month = MONTHS.get(named.group(1)[:3], 0)
        year = int(named.group(2))
    elif year_only:
        year, month = int(year_only.group(1)), 1
    else:
        return None
    if not 1 <= month <= 12:
        return None
    return year, month


def is_present(value: str | None) -> bool:
    return bool(value) and value.strip().lower() in PRESENT_WORDS


def months_between(start: tuple[int, int], end: tuple[int, int]) -> int:
    return (end[0] - start[0]) * 12 + (end[1] - start[1])


def total_experience_years(experience: list, now: date | None = None) -> float:
    """Sum of (end - start) across entries, in years rounded to one decimal.

    ``current`` entries (or an end date such as "present") run until ``now``.
    Entries with an unparseable start or end contribute nothing, and no entry
    contributes a negative span.
    """
    now = now or date.today()
    total_months = 0
    for exp in experience:
        start = parse_month(exp.start_date)
        if start is None:
            continue
        if exp.current or is_present(exp.end_date):
            end = (now.year, now.month)
        else:
            end = parse_month(exp.end_date)
        if end is None:
            continue
        total_months += max(0, months_between(start, end))
    return round(total_months / 12, 1)
