"""Tests for datetime helpers."""

from datetime import datetime, timedelta, timezone

from labcollab.shared.utils.datetime_utils import (
    ensure_utc,
    format_local_datetime,
    parse_server_timestamp,
)


class TestParseServerTimestamp:
    def test_z_suffix(self):
        assert parse_server_timestamp("2025-03-05T14:07:00Z") == datetime(
            2025, 3, 5, 14, 7, tzinfo=timezone.utc
        )

    def test_naive_is_utc(self):
        parsed = parse_server_timestamp("2025-03-05T14:07:00")
        assert parsed.tzinfo is not None
        assert parsed.hour == 14

    def test_offset_converted_to_utc(self):
        parsed = parse_server_timestamp("2025-03-05T09:07:00-05:00")
        assert parsed == datetime(2025, 3, 5, 14, 7, tzinfo=timezone.utc)

    def test_unparseable_and_empty(self):
        assert parse_server_timestamp("ayer") is None
        assert parse_server_timestamp("  ") is None
        assert parse_server_timestamp(None) is None

    def test_datetime_passthrough(self):
        value = datetime(2025, 3, 5, 14, 7)
        assert parse_server_timestamp(value) == ensure_utc(value)


class TestFormatLocalDatetime:
    def test_utc(self):
        value = datetime(2025, 3, 5, 4, 7, tzinfo=timezone.utc)
        assert format_local_datetime(value) == "05/03/2025, 04:07"

    def test_aware_input_is_normalised(self):
        value = datetime(2025, 3, 5, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert format_local_datetime(value, "UTC") == "06/03/2025, 04:30"
