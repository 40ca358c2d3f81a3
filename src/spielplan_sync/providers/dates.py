"""
Date and time normalisation for provider records.

fussball.de reports dates in several shapes depending on the endpoint and
response version:

    2025-10-25          ISO
    Sa, 25.10.2025      day-first, optional weekday abbreviation
    25.10.25            two-digit year (00-49 -> 20xx, 50-99 -> 19xx)

normalize_date() turns all of them into an ISO date string and returns ""
for anything else. It never raises.
"""

import re
from datetime import date

TWO_DIGIT_YEAR_PIVOT = 50

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:$|[T\s])")
# Optional weekday ("Sa", "Sa.", "Sa,", "Samstag,") before the dotted date
_WEEKDAY = r"(?:[A-Za-zÄÖÜäöü]{2,10}\.?,?\s*)?"
_DOTTED_RE = re.compile(rf"^{_WEEKDAY}(\d{{1,2}})\.(\d{{1,2}})\.(\d{{4}})(?:$|\s)")
_DOTTED_SHORT_RE = re.compile(rf"^{_WEEKDAY}(\d{{1,2}})\.(\d{{1,2}})\.(\d{{2}})(?:$|\s)")
_TIME_RE = re.compile(r"(?<!\d)(\d{1,2})[:.](\d{2})(?!\d)")


def _iso(year: int, month: int, day: int) -> str:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return ""


def expand_two_digit_year(year: int) -> int:
    """Map a two-digit year onto a century using the pivot year."""
    return 2000 + year if year < TWO_DIGIT_YEAR_PIVOT else 1900 + year


def normalize_date(value: str | None) -> str:
    """
    Convert a provider date string into ``YYYY-MM-DD``.

    Returns an empty string when the value is empty, does not match a
    supported format, or names a day that does not exist.
    """
    if not value or not isinstance(value, str):
        return ""
    text = value.strip()

    match = _ISO_RE.match(text)
    if match:
        return _iso(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    match = _DOTTED_RE.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return _iso(year, month, day)

    match = _DOTTED_SHORT_RE.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return _iso(expand_two_digit_year(year), month, day)

    return ""


def normalize_time(value: str | None) -> str | None:
    """
    Extract a ``HH:MM`` clock time ("15:00 Uhr" -> "15:00").

    Returns None when no valid time is present.
    """
    if not value or not isinstance(value, str):
        return None
    match = _TIME_RE.search(value)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"
