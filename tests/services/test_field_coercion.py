# tests/services/test_field_coercion.py

import math
from datetime import date, datetime, timezone

import pandas as pd
import pytest

from app.services.field_coercion import (
    DateParsePolicy,
    format_boolean_for_export,
    format_date_for_export,
    format_date_time_for_export,
    get_field_value,
    has_field_value,
    is_blank,
    is_valid_uuid,
    to_boolean,
    to_date_only,
    to_date_time,
    to_number,
    to_string,
    to_time,
)


@pytest.mark.parametrize("value", [None, "", "   ", float("nan"), pd.NaT])
def test_is_blank(value):
    assert is_blank(value)


def test_is_blank_false_for_zero_and_false():
    assert not is_blank(0)
    assert not is_blank(False)
    assert not is_blank("x")


def test_to_string_trims_and_renders_integral_floats():
    assert to_string("  Milano ") == "Milano"
    assert to_string(20121.0) == "20121"
    assert to_string(3.5) == "3.5"
    assert to_string("") is None
    assert to_string(None) is None


def test_to_number_coerces_equal_representations():
    assert to_number(10) == 10
    assert to_number(10.0) == 10
    assert isinstance(to_number(10.0), int)
    assert to_number("10") == 10
    assert to_number("10,5") == 10.5
    assert to_number(" 42.25 ") == 42.25


@pytest.mark.parametrize("value", ["abc", "", None, True, float("inf"), "1,2,3"])
def test_to_number_invalid(value):
    assert to_number(value) is None


@pytest.mark.parametrize("value", [True, 1, "true", "TRUE", "1", "Sì", "si", " SI "])
def test_to_boolean_truthy(value):
    assert to_boolean(value) is True


@pytest.mark.parametrize("value", [False, 0, 2, "false", "no", "yes", "", None, float("nan")])
def test_to_boolean_everything_else_is_false(value):
    assert to_boolean(value) is False


def test_is_valid_uuid():
    assert is_valid_uuid("123e4567-e89b-12d3-a456-426614174000")
    assert not is_valid_uuid("123e4567")
    assert not is_valid_uuid(None)


@pytest.mark.parametrize(
    "value",
    [
        "2024-01-15",
        "15/01/2024",
        "15-01-2024",
        "15.01.2024",
        "2024-01-15T10:30:00Z",
        datetime(2024, 1, 15, 10, 30),
        date(2024, 1, 15),
        pd.Timestamp("2024-01-15"),
        45306,
        45306.75,
    ],
)
def test_to_date_only_accepts_common_representations(value):
    assert to_date_only(value) == "2024-01-15"


def test_to_date_only_failure_policies():
    assert to_date_only("not a date") is None
    assert to_date_only("not a date", DateParsePolicy.PRESERVE_ON_FAILURE) == "not a date"
    assert to_date_only("") is None


def test_to_date_time_normalizes_timezone_to_utc():
    aware = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
    assert to_date_time(aware) == "2024-01-15T12:00:00"
    assert to_date_time("2024-01-15T13:00:00+01:00") == "2024-01-15T12:00:00"
    assert to_date_time("15/01/2024 08:05") == "2024-01-15T08:05:00"


@pytest.mark.parametrize(
    "value, expected",
    [("08:30", "08:30"), ("8.30", "08:30"), ("23:59:59", "23:59"), (0.5, "12:00"), (0.25, "06:00")],
)
def test_to_time(value, expected):
    assert to_time(value) == expected


@pytest.mark.parametrize("value", ["24:00", "12:60", "noon", 1.5, ""])
def test_to_time_invalid(value):
    assert to_time(value) is None


def test_get_field_value_uses_first_non_blank_alias():
    row = {"Ragione Sociale": "  ", "ragioneSociale": "Acme"}
    aliases = ("Ragione Sociale", "ragione_sociale", "ragioneSociale")
    assert get_field_value(row, aliases, to_string) == "Acme"
    assert has_field_value(row, aliases)
    assert get_field_value({}, aliases, to_string) is None
    assert not has_field_value({"Ragione Sociale": None}, aliases)


def test_export_boolean_labels():
    assert format_boolean_for_export(True) == "Sì"
    assert format_boolean_for_export(False) == "No"
    assert format_boolean_for_export(True, "Yes", "No") == "Yes"
    assert format_boolean_for_export(None) is None


def test_export_dates_preserve_unparseable_values():
    assert format_date_for_export("2024-01-15") == "15/01/2024"
    assert format_date_for_export("2024-01-15T10:30:00") == "15/01/2024"
    assert format_date_time_for_export("2024-01-15T10:30:00") == "15/01/2024 10:30"
    assert format_date_for_export("da definire") == "da definire"
    assert format_date_for_export("da definire", policy=DateParsePolicy.NULL_ON_FAILURE) is None
    assert format_date_for_export(None) is None


def test_nan_is_not_a_number():
    assert to_number(math.nan) is None


def test_integers_beyond_float_range_are_not_numbers():
    assert to_number(10**400) is None
    assert to_number(-(10**400)) is None
    assert to_date_only(10**400) is None
    assert to_date_time(10**400) is None
    assert to_time(10**400) is None


@pytest.mark.parametrize("n", [0, 42, -7, 10.5, -0.25, 1234567.89, 10**15])
def test_to_number_reads_back_to_string_output(n):
    assert to_number(to_string(n)) == n
