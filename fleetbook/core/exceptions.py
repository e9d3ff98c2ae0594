"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def to_content(self) -> dict[str, Any]:
        """Response body for the exception handler."""
        return {"detail": self.detail}


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class BookingValidationError(ValidationError):
    """A booking request violated one of the eligibility or business rules.

    ``rule`` is a stable machine-readable code; ``detail`` is the human-readable
    reason shown to the requester.
    """

    def __init__(self, rule: str, detail: str) -> None:
        self.rule = rule
        super().__init__(detail=detail)

    def to_content(self) -> dict[str, Any]:
        return {"detail": self.detail, "rule": self.rule}


class UnknownEnumValue(ValidationError):
    """Raised when a raw value does not name any member of an enumeration."""

    def __init__(self, enum_name: str, value: Any, allowed: list[str]) -> None:
        self.enum_name = enum_name
        self.value = value
        self.allowed = allowed
        super().__init__(
            f"Unknown {enum_name} value '{value}'. Allowed: {', '.join(allowed)}"
        )


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidStateTransition(AppException):
    """Illegal booking lifecycle move."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Invalid booking transition: {current} → {requested}",
        )

    def to_content(self) -> dict[str, Any]:
        return {"detail": self.detail, "current": self.current, "requested": self.requested}


class ConflictError(AppException):
    """Resource double-booked, detected while committing the unit of work."""

    def __init__(self, detail: str = "The resource is already booked for the requested period") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ExternalServiceError(AppException):
    """External service error."""

    def __init__(self, service: str, detail: str | None = None) -> None:
        message = f"External service '{service}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
