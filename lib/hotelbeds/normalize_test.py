"""Tests for field normalizers."""

from datetime import date

import pytest

from lib.hotelbeds.normalize import (
    add_days,
    null_if_empty,
    parse_bool,
    parse_calendar_date,
    parse_date,
    parse_float,
    parse_int,
)


class TestParseDate:
    """Tests for the date rule."""

    @pytest.mark.no_db
    def test_compact_format(self):
        assert parse_date("20250908") == "2025-09-08T00:00:00Z"

    @pytest.mark.no_db
    def test_dashed_format(self):
        assert parse_date("2025-09-08") == "2025-09-08T00:00:00Z"

    @pytest.mark.no_db
    @pytest.mark.parametrize("value", ["", None, "2025098", "08/09/2025", "20251340", "abc"])
    def test_anything_else_is_none(self, value):
        assert parse_date(value) is None

    @pytest.mark.no_db
    def test_calendar_date(self):
        assert parse_calendar_date("20240229") == date(2024, 2, 29)
        assert parse_calendar_date("20230229") is None

    @pytest.mark.no_db
    def test_add_days_crosses_month(self):
        assert add_days("2025-01-31T00:00:00Z", 1) == "2025-02-01T00:00:00Z"


class TestScalars:
    """Tests for bool/int/float/string rules."""

    @pytest.mark.no_db
    def test_bool_only_y_is_true(self):
        assert parse_bool("Y") is True
        assert parse_bool("N") is False
        assert parse_bool("1") is False
        assert parse_bool("") is False
        assert parse_bool(None) is False

    @pytest.mark.no_db
    def test_int(self):
        assert parse_int("12") == 12
        assert parse_int(" 7 ") == 7
        assert parse_int("") is None
        assert parse_int("1.5") is None
        assert parse_int(None) is None

    @pytest.mark.no_db
    def test_float(self):
        assert parse_float("171.610") == pytest.approx(171.61)
        assert parse_float("") is None
        assert parse_float("N") is None

    @pytest.mark.no_db
    def test_empty_string_to_none(self):
        assert null_if_empty("") is None
        assert null_if_empty("DBL") == "DBL"
