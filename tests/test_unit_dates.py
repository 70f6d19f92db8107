from datetime import date, datetime

import pytest
import pytz

from fleetplanner.exceptions import InvalidRangeError
from fleetplanner.utils.dates import (
    add_weeks,
    day_key,
    expand_range,
    normalize_window,
    parse_day,
    window_bounds,
)
from fleetplanner.utils.filters import fmt_day, fmt_window


def test_parse_day_accepts_common_shapes():
    assert parse_day("2024-03-01") == date(2024, 3, 1)
    assert parse_day("2024-03-01T09:30:00Z") == date(2024, 3, 1)
    assert parse_day("2024-03-01 09:30") == date(2024, 3, 1)
    assert parse_day(date(2024, 3, 1)) == date(2024, 3, 1)
    assert parse_day(datetime(2024, 3, 1, 23, 59)) == date(2024, 3, 1)


def test_aware_datetime_uses_local_civil_date():
    # 23:30 UTC on the night the clocks go forward is already 1 April in London
    late = pytz.utc.localize(datetime(2024, 3, 31, 23, 30))
    assert day_key(late, "Europe/London") == "2024-04-01"
    assert day_key(late, "UTC") == "2024-03-31"


def test_offset_strings_use_local_civil_date():
    # a browser toISOString() value for late evening in London
    assert parse_day("2024-06-30T23:30:00.000Z", "Europe/London") == date(2024, 7, 1)
    assert parse_day("2024-06-30T23:30:00+00:00", "Europe/London") == \
        parse_day(pytz.utc.localize(datetime(2024, 6, 30, 23, 30)), "Europe/London")
    assert day_key("2024-07-01T00:30:00+01:00", "UTC") == "2024-06-30"
    assert parse_day("2024-06-30T23:30:00", "Europe/London") == date(2024, 6, 30)


@pytest.mark.parametrize("bad", ["", "01/03/2024", "2024-13-01", None, 42])
def test_parse_day_rejects_garbage(bad):
    with pytest.raises(InvalidRangeError):
        parse_day(bad)


def test_expand_range_is_inclusive_and_crosses_month_end():
    assert expand_range("2024-02-28", "2024-03-01") == ["2024-02-28", "2024-02-29", "2024-03-01"]
    assert expand_range("2024-03-01", "2024-03-01") == ["2024-03-01"]


def test_expand_range_rejects_inverted_range():
    with pytest.raises(InvalidRangeError):
        expand_range("2024-03-05", "2024-03-01")


def test_normalize_window_modes():
    assert normalize_window(None) == frozenset()
    assert normalize_window("") == frozenset()
    assert normalize_window("2024-03-01") == {"2024-03-01"}
    assert normalize_window({"mode": "single", "date": "2024-03-01"}) == {"2024-03-01"}
    assert normalize_window({"mode": "range", "start": "2024-03-01", "end": "2024-03-03"}) == {
        "2024-03-01", "2024-03-02", "2024-03-03",
    }
    assert normalize_window({"start": "2024-03-01"}) == {"2024-03-01"}
    assert normalize_window({"mode": "list", "dates": ["2024-03-05", "2024-03-01", ""]}) == {
        "2024-03-01", "2024-03-05",
    }
    assert normalize_window(["2024-03-01", "2024-03-01"]) == {"2024-03-01"}


def test_normalize_window_unknown_mode():
    with pytest.raises(InvalidRangeError):
        normalize_window({"mode": "weekly", "start": "2024-03-01"})


def test_window_bounds():
    assert window_bounds({"2024-03-05", "2024-02-28", "2024-03-01"}) == ("2024-02-28", "2024-03-05")
    assert window_bounds(set()) == (None, None)


def test_add_weeks():
    assert add_weeks("2024-01-10", 26) == "2024-07-10"
    # 52 weeks is 364 days, one short of a calendar year
    assert add_weeks("2024-05-01", 52) == "2025-04-30"
    assert add_weeks("2024-05-01", "52") == "2025-04-30"
    assert add_weeks("", 52) == ""
    assert add_weeks("2024-05-01", 0) == ""
    assert add_weeks("2024-05-01", None) == ""
    assert add_weeks("2024-05-01", "often") == ""


def test_fmt_day_and_window():
    assert fmt_day("2024-03-01") == "Fri 01 Mar 2024"
    assert fmt_day(None) == "—"
    assert fmt_day("soon") == "soon"
    assert fmt_window("2024-03-01", "2024-03-01") == "Fri 01 Mar 2024"
    assert fmt_window("2024-03-01", "2024-03-03") == "Fri 01 Mar 2024 → Sun 03 Mar 2024"
