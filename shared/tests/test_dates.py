from datetime import datetime, timezone

import pytest

from shared.utils.dates import end_of_day, is_date_only, parse_timestamp


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-01-15T09:30:00Z", datetime(2024, 1, 15, 9, 30)),
        ("2024-01-15T11:30:00+02:00", datetime(2024, 1, 15, 9, 30)),
        ("2024-01-15", datetime(2024, 1, 15)),
        ("Mon, 15 Jan 2024 08:00:00 +0000", datetime(2024, 1, 15, 8, 0)),
        ("Mon, 15 Jan 2024 03:00:00 -0500", datetime(2024, 1, 15, 8, 0)),
    ],
)
def test_parse_timestamp(raw, expected):
    assert parse_timestamp(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "yesterday", 1705311000])
def test_parse_timestamp_rejects(raw):
    assert parse_timestamp(raw) is None


def test_parse_timestamp_normalizes_aware_datetime():
    aware = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)
    assert parse_timestamp(aware) == datetime(2024, 1, 15, 9, 30)


def test_date_only_detection():
    assert is_date_only("2024-01-05")
    assert not is_date_only("2024-01-05T00:00:00")
    assert not is_date_only("05/01/2024")


def test_end_of_day():
    assert end_of_day(datetime(2024, 1, 5, 7, 0)) == datetime(2024, 1, 5, 23, 59, 59, 999999)
