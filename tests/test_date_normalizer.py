"""
Tests for upstream date normalization.
"""
import pytest
from datetime import datetime, timedelta, timezone

from app.services.date_normalizer import EPOCH, normalize_date


UTC = timezone.utc


@pytest.mark.unit
class TestEpochMillis:
    """Numeric dates are epoch milliseconds."""

    @pytest.mark.parametrize("millis", [0, 1, 999, 1700000000000, 1700000000123, -86400000])
    def test_exact_instant(self, millis):
        assert normalize_date(millis) == EPOCH + timedelta(milliseconds=millis)

    def test_known_timestamp(self):
        assert normalize_date(1700000000000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_float_millis(self):
        assert normalize_date(1700000000000.0) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_result_is_utc_aware(self):
        result = normalize_date(1700000000000)
        assert result.tzinfo is not None
        assert result.utcoffset() == timedelta(0)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), 10 ** 20])
    def test_unrepresentable_numbers_are_none(self, value):
        assert normalize_date(value) is None


@pytest.mark.unit
class TestStrings:
    """String dates are parsed, failures become None."""

    def test_iso_with_z(self):
        assert normalize_date("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_iso_with_offset_converted_to_utc(self):
        assert normalize_date("2024-03-01T12:00:00+02:00") == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_naive_iso_taken_as_utc(self):
        assert normalize_date("2024-03-01T10:00:00") == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_date_only(self):
        assert normalize_date("2024-03-01") == datetime(2024, 3, 1, tzinfo=UTC)

    def test_us_locale_format(self):
        assert normalize_date("03/01/2024 10:00:00") == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_javascript_date_string(self):
        raw = "Fri Mar 01 2024 12:00:00 GMT+0200 (Eastern European Standard Time)"
        assert normalize_date(raw) == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    @pytest.mark.parametrize("raw", ["not a date", "", "   ", "2024-13-45", "yesterday"])
    def test_unparsable_is_none(self, raw):
        assert normalize_date(raw) is None


@pytest.mark.unit
class TestOtherInputs:

    @pytest.mark.parametrize("raw", [None, True, False, [], {}, object()])
    def test_not_a_date(self, raw):
        assert normalize_date(raw) is None

    @pytest.mark.parametrize("raw", [
        datetime(2024, 3, 1, 10, 0),
        datetime(2024, 3, 1, 10, 0, tzinfo=UTC),
    ])
    def test_datetime_objects_are_not_a_wire_encoding(self, raw):
        assert normalize_date(raw) is None
