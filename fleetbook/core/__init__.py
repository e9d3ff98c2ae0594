"""Core utilities: exceptions, middleware and persistence guards."""

from fleetbook.core.exceptions import (
    AppException,
    BookingValidationError,
    ConflictError,
    ExternalServiceError,
    InvalidStateTransition,
    NotFoundError,
    UnknownEnumValue,
    ValidationError,
)

__all__ = [
    "AppException",
    "BookingValidationError",
    "ConflictError",
    "ExternalServiceError",
    "InvalidStateTransition",
    "NotFoundError",
    "UnknownEnumValue",
    "ValidationError",
]
