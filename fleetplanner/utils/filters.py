"""Jinja filters and date formatting helpers."""
from fleetplanner.exceptions import InvalidRangeError
from fleetplanner.utils.dates import parse_day


def fmt_day(value) -> str:
    """
    Format a day key (or any date-like) as e.g. 'Fri 01 Mar 2024'.
    On parse error, returns the original value (so messages never go blank).
    """
    if value is None:
        return "—"
    s = str(value).strip()
    if not s:
        return "—"
    try:
        return parse_day(value).strftime("%a %d %b %Y")
    except InvalidRangeError:
        return s


def fmt_window(start, end) -> str:
    """'Fri 01 Mar 2024' for one day, 'Fri 01 Mar 2024 → Sun 03 Mar 2024' otherwise."""
    if not end or start == end:
        return fmt_day(start)
    return f"{fmt_day(start)} → {fmt_day(end)}"
