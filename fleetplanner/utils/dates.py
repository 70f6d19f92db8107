"""
Calendar-day helpers shared by every availability and maintenance caller.

All arithmetic is done on ``datetime.date`` (year/month/day components), so a
day key never moves because of a midnight, DST or UTC offset. Aware datetimes
are first converted into the configured local zone and then truncated.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

import pytz

from fleetplanner.exceptions import InvalidRangeError
from fleetplanner.utils.constants import DATE_FMT

DEFAULT_TIMEZONE = "Europe/London"

_OFFSET_RE = re.compile(r"(?:[Zz]|[+-]\d{2}:?\d{2})$")


def parse_day(value, tz_name: Optional[str] = None) -> date:
    """
    Coerce any date-like to a civil date.

    Supports ``date``, naive or aware ``datetime`` and strings starting with
    ``YYYY-MM-DD``. A string time part is ignored unless it carries a UTC
    offset or 'Z', in which case the instant is read in the local zone.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(pytz.timezone(tz_name or DEFAULT_TIMEZONE))
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        base = s.split("T", 1)[0].split(" ", 1)[0]
        if len(s) > len(base) and _OFFSET_RE.search(s):
            try:
                stamp = datetime.fromisoformat(s[:-1] + "+00:00" if s[-1] in "Zz" else s)
            except ValueError:
                raise InvalidRangeError(f"Error: invalid date {value!r} (expected YYYY-MM-DD)") from None
            return parse_day(stamp, tz_name)
        try:
            return datetime.strptime(base, DATE_FMT).date()
        except ValueError:
            raise InvalidRangeError(f"Error: invalid date {value!r} (expected YYYY-MM-DD)") from None
    raise InvalidRangeError(f"Error: unsupported date {value!r}")


def day_key(value, tz_name: Optional[str] = None) -> str:
    """Return the ``YYYY-MM-DD`` key for a date-like value."""
    return parse_day(value, tz_name).strftime(DATE_FMT)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def expand_range(start, end, tz_name: Optional[str] = None) -> list[str]:
    """Every day key from start to end, both inclusive."""
    d1 = parse_day(start, tz_name)
    d2 = parse_day(end, tz_name)
    if d1 > d2:
        raise InvalidRangeError(
            f"Error: start date {d1.isoformat()} is after end date {d2.isoformat()}"
        )
    out = []
    cur = d1
    while cur <= d2:
        out.append(cur.strftime(DATE_FMT))
        cur += timedelta(days=1)
    return out


def days_from_list(values: Iterable, tz_name: Optional[str] = None) -> frozenset[str]:
    return frozenset(day_key(v, tz_name) for v in values if not _is_blank(v))


def normalize_window(window, tz_name: Optional[str] = None) -> frozenset[str]:
    """
    Normalise a reservation window to a set of day keys.

    Accepted shapes:
      - a single date-like value
      - a list/tuple/set of date-like values (non-consecutive days)
      - ``{"start": ..., "end": ...}`` (inclusive range, end defaults to start)
      - ``{"mode": "single" | "range" | "list", ...}`` as sent by the booking forms

    ``None`` or an empty value yields an empty set. A range whose start is
    after its end raises ``InvalidRangeError``.
    """
    if _is_blank(window):
        return frozenset()
    if isinstance(window, (list, tuple, set, frozenset)):
        return days_from_list(window, tz_name)
    if isinstance(window, dict):
        mode = (window.get("mode") or "").strip().lower()
        if not mode:
            if window.get("dates") is not None:
                mode = "list"
            elif not _is_blank(window.get("start")):
                mode = "range"
            else:
                mode = "single"

        if mode == "list":
            return days_from_list(window.get("dates") or [], tz_name)
        if mode == "range":
            start = window.get("start")
            end = window.get("end")
            if _is_blank(start):
                return frozenset()
            if _is_blank(end):
                end = start
            return frozenset(expand_range(start, end, tz_name))
        if mode == "single":
            one = window.get("date")
            if _is_blank(one):
                one = window.get("start")
            return frozenset() if _is_blank(one) else frozenset({day_key(one, tz_name)})
        raise InvalidRangeError(f"Error: unknown window mode {mode!r}")
    return frozenset({day_key(window, tz_name)})


def window_bounds(days: Iterable[str]) -> tuple[Optional[str], Optional[str]]:
    """(first, last) day key of a day-set; day keys sort chronologically."""
    ordered = sorted(days)
    if not ordered:
        return None, None
    return ordered[0], ordered[-1]


def add_weeks(value, weeks) -> str:
    """
    Day key ``weeks * 7`` calendar days after value.
    Returns '' when either side is missing or weeks is not a positive number.
    """
    if _is_blank(value):
        return ""
    try:
        w = int(float(weeks or 0))
    except (TypeError, ValueError):
        return ""
    if w <= 0:
        return ""
    return (parse_day(value) + timedelta(days=w * 7)).strftime(DATE_FMT)


def local_today(tz_name: Optional[str] = None) -> date:
    """Today's civil date in the configured zone (not the server's)."""
    return datetime.now(pytz.timezone(tz_name or DEFAULT_TIMEZONE)).date()
