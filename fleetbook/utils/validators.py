"""Custom validation utilities."""

import re
from enum import Enum
from typing import Any, TypeVar

from fleetbook.core.exceptions import UnknownEnumValue
from fleetbook.domain.enums import parse_enum

E = TypeVar("E", bound=Enum)

_PLATE_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9 \-]{0,18}[A-Z0-9]$")


def normalize_plate_number(plate: str) -> str:
    """Upper-case a plate number and collapse runs of whitespace.

    Args:
        plate: Plate number as entered

    Returns:
        str: Normalised plate like 'ABC 1234'
    """
    return re.sub(r"\s+", " ", plate.strip()).upper()


def validate_plate_number(plate: str) -> bool:
    """Validate a normalised plate number.

    Accepted: 2-20 characters of letters, digits, spaces and dashes,
    starting and ending with a letter or digit.
    """
    return bool(_PLATE_PATTERN.match(plate))


def enum_value(enum_cls: type[E], value: Any) -> E:
    """Strict enum parsing for pydantic validators.

    Re-raises UnknownEnumValue as ValueError so pydantic reports it as a
    field error.
    """
    try:
        return parse_enum(enum_cls, value)
    except UnknownEnumValue as exc:
        raise ValueError(exc.detail) from exc
