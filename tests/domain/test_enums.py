"""Strict enumeration parsing."""

import pytest

from fleetbook.core.exceptions import UnknownEnumValue
from fleetbook.domain.enums import BookingStatus, BookingType, VehicleType, parse_enum
from fleetbook.utils.validators import enum_value, normalize_plate_number, validate_plate_number


def test_parse_enum_is_case_insensitive():
    assert parse_enum(VehicleType, "SUV") == VehicleType.SUV
    assert parse_enum(BookingStatus, " no_show ") == BookingStatus.NO_SHOW


def test_parse_enum_passes_members_through():
    assert parse_enum(BookingType, BookingType.MEETING) is BookingType.MEETING


def test_unknown_value_has_no_default():
    with pytest.raises(UnknownEnumValue) as exc_info:
        parse_enum(VehicleType, "hovercraft")
    assert exc_info.value.status_code == 422
    assert "hovercraft" in exc_info.value.detail
    assert "sedan" in exc_info.value.allowed


def test_non_string_value_rejected():
    with pytest.raises(UnknownEnumValue):
        parse_enum(VehicleType, 3)


def test_enum_value_raises_value_error_for_pydantic():
    with pytest.raises(ValueError):
        enum_value(BookingType, "party")


@pytest.mark.parametrize(
    "raw,expected",
    [("abc 1234", "ABC 1234"), ("  ab   12 ", "AB 12"), ("x-1", "X-1")],
)
def test_normalize_plate_number(raw, expected):
    assert normalize_plate_number(raw) == expected


@pytest.mark.parametrize("plate,valid", [("ABC 1234", True), ("A", False), ("-AB1", False)])
def test_validate_plate_number(plate, valid):
    assert validate_plate_number(plate) is valid
