from datetime import datetime, timezone

import pytest

from weather_api.utils.serialization import to_jsonable
from weather_api.utils.time_windows import (
    hour_bucket,
    local_day_range,
    round_half_up,
    subtract_months,
    trailing_months_window,
)
from weather_api.utils.validation import (
    parse_datetime,
    parse_int_or_default,
    parse_object_id,
    validate_object_id,
)


@pytest.mark.parametrize("raw, expected", [
    (None, 10),
    ("", 10),
    ("abc", 10),
    ("0", 10),
    ("25", 25),
    ("3abc", 3),
    ("-2", -2),
    ("100000", 100000),
])
def test_parse_int_or_default(raw, expected):
    assert parse_int_or_default(raw, 10) == expected


def test_parse_datetime_converts_offsets_to_naive_utc():
    assert parse_datetime("2024-03-14T10:30:00Z") == datetime(2024, 3, 14, 10, 30)
    assert parse_datetime("2024-03-14T12:30:00+02:00") == datetime(2024, 3, 14, 10, 30)
    assert parse_datetime("2024-03-14") == datetime(2024, 3, 14)


def test_parse_datetime_rejects_garbage():
    with pytest.raises(ValueError):
        parse_datetime("yesterday")
    with pytest.raises(ValueError):
        parse_datetime(None)


def test_object_id_validation():
    assert validate_object_id("65f2c1e4a1b2c3d4e5f60718")
    assert not validate_object_id("not-an-id")
    assert not validate_object_id(None)
    with pytest.raises(ValueError):
        parse_object_id("1234")


def test_subtract_months_rolls_past_month_end_forward():
    assert subtract_months(datetime(2024, 7, 31, 8, 0), 5) == datetime(2024, 3, 2, 8, 0)
    assert subtract_months(datetime(2023, 7, 31, 8, 0), 5) == datetime(2023, 3, 3, 8, 0)
    assert subtract_months(datetime(2024, 3, 31), 1) == datetime(2024, 3, 2)
    assert subtract_months(datetime(2024, 2, 29), 12) == datetime(2023, 3, 1)
    assert subtract_months(datetime(2024, 3, 15), 5) == datetime(2023, 10, 15)


def test_trailing_window_keeps_exact_bounds():
    now = datetime(2024, 8, 20, 13, 45, 12)
    start, end = trailing_months_window(now, 5)
    assert start == datetime(2024, 3, 20, 13, 45, 12)
    assert end == now


def test_hour_bucket():
    start, end = hour_bucket(datetime(2024, 3, 14, 10, 30, 15, 500000))
    assert start == datetime(2024, 3, 14, 10, 0)
    assert end == datetime(2024, 3, 14, 11, 0)


def test_local_day_range_covers_whole_local_days():
    start, end = local_day_range(datetime(2024, 1, 10, 12, 0), datetime(2024, 1, 12, 12, 0))

    local_start = start.replace(tzinfo=timezone.utc).astimezone()
    local_end = end.replace(tzinfo=timezone.utc).astimezone()
    assert (local_start.hour, local_start.minute, local_start.second) == (0, 0, 0)
    assert (local_end.hour, local_end.minute, local_end.second) == (23, 59, 59)
    assert local_end.microsecond == 999000
    assert start <= datetime(2024, 1, 10, 12, 0)
    assert end >= datetime(2024, 1, 12, 12, 0)


@pytest.mark.parametrize("value, expected", [(1.5, 2), (2.5, 3), (0.4, 0), (0.0, 0), (3.49, 3)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_to_jsonable_marks_naive_datetimes_as_utc():
    document = {"_id": parse_object_id("65f2c1e4a1b2c3d4e5f60718"), "time": datetime(2024, 3, 14, 10, 0)}
    assert to_jsonable(document) == {
        "id": "65f2c1e4a1b2c3d4e5f60718",
        "time": "2024-03-14T10:00:00+00:00",
    }


def test_trailing_window_from_month_end():
    start, _ = trailing_months_window(datetime(2024, 7, 31, 12, 0), 5)
    assert start == datetime(2024, 3, 2, 12, 0)
