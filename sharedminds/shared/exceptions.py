from typing import Any

from fastapi import HTTPException, status


class BaseHTTPException(HTTPException):
    """HTTPException with class-level status code and default message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            status_code=self.__class__.status_code, detail=message or self.message
        )


# Authentication & Authorization Exceptions
class InvalidTokenError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing or invalid token"
        )


class UnlinkedProfileError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail="User not linked to profile"
        )


class NotAuthorizedError(BaseHTTPException):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Not authorized"


# Resource Not Found Exceptions
class EntityNotFoundError(HTTPException):
    def __init__(self, entity: str, entity_id: str | None = None) -> None:
        detail = f"{entity} not found"
        if entity_id:
            detail = f"{entity} {entity_id} not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class FeatureUnavailableError(HTTPException):
    def __init__(self, feature_key: str) -> None:
        self.feature_key = feature_key
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No enabled AI route is available for feature '{feature_key}'",
        )


# Validation / Request Exceptions
class InvalidDataError(BaseHTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request data"


class ReferentialIntegrityError(HTTPException):
    """A mutation is blocked by dependent rows that must be handled first."""

    def __init__(self, message: str, blocking_count: int) -> None:
        self.blocking_count = blocking_count
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": message, "blocking_count": blocking_count},
        )


class ConfirmationRequiredError(HTTPException):
    """A destructive action needs explicit confirmation of its blast radius."""

    def __init__(self, message: str, impact: dict[str, Any]) -> None:
        self.impact = impact
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": message, "impact": impact, "requires_confirmation": True},
        )


# Storage Exceptions
class StorageOperationError(HTTPException):
    def __init__(self, operation: str, error: Exception | str) -> None:
        self.operation = operation
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {operation}: {str(error)}",
        )
