from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    MISSING_REQUIRED_FIELD = ErrorDefinition(
        "MISSING_REQUIRED_FIELD",
        "Missing required field",
        status.HTTP_400_BAD_REQUEST,
    )
    INVALID_DATE_RANGE = ErrorDefinition(
        "INVALID_DATE_RANGE",
        "Invalid date range",
        status.HTTP_400_BAD_REQUEST,
    )
    SESSION_NOT_FOUND = ErrorDefinition(
        "SESSION_NOT_FOUND",
        "Cash session not found",
        status.HTTP_404_NOT_FOUND,
    )
    DUPLICATE_SESSION = ErrorDefinition(
        "DUPLICATE_SESSION",
        "Shift already registered for this branch and day",
        status.HTTP_409_CONFLICT,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)
