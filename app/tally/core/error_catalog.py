from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    INVALID_CREDENTIALS = ErrorDefinition(
        "INVALID_CREDENTIALS",
        "Invalid credentials",
        status.HTTP_401_UNAUTHORIZED,
    )
    USER_INACTIVE = ErrorDefinition(
        "USER_INACTIVE",
        "User is inactive or suspended",
        status.HTTP_403_FORBIDDEN,
    )
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    TENANT_SCOPE_REQUIRED = ErrorDefinition(
        "TENANT_SCOPE_REQUIRED",
        "Tenant scope is required",
        status.HTTP_403_FORBIDDEN,
    )
    NOT_FOUND = ErrorDefinition(
        "NOT_FOUND",
        "Resource not found",
        status.HTTP_404_NOT_FOUND,
    )
    BUSINESS_RULE_VIOLATION = ErrorDefinition(
        "BUSINESS_RULE_VIOLATION",
        "Business rule violation",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    CONCURRENCY_CONFLICT = ErrorDefinition(
        "CONCURRENCY_CONFLICT",
        "Inventory changed during count",
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
    def __init__(self, error: ErrorDefinition, details: object | None = None, message: str | None = None):
        self.error = error
        self.details = details
        self.message = message or error.message
        super().__init__(self.message)


def _details_with_message(message: str, details: dict | None) -> dict:
    payload = {"message": message}
    if details:
        payload.update(details)
    return payload


class ValidationError(AppError):
    """Malformed input, detected before any side effect."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(ErrorCatalog.VALIDATION_ERROR, _details_with_message(message, details), message)


class BusinessRuleViolationError(AppError):
    """State machine or invariant violation; always aborts the unit of work."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(ErrorCatalog.BUSINESS_RULE_VIOLATION, _details_with_message(message, details), message)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Insufficient permissions", details: dict | None = None):
        super().__init__(ErrorCatalog.PERMISSION_DENIED, _details_with_message(message, details), message)


class NotFoundError(AppError):
    """Missing entity, or one owned by another tenant."""

    def __init__(self, entity: str, entity_id: object | None = None):
        if entity_id is not None:
            message = f"{entity} with ID '{entity_id}' not found"
        else:
            message = f"{entity} not found"
        super().__init__(ErrorCatalog.NOT_FOUND, {"message": message, "entity": entity}, message)


class ConcurrencyError(AppError):
    """Live inventory diverged from the count snapshots; carries the change-set."""

    def __init__(self, changes: list, message: str | None = None):
        self.changes = list(changes)
        message = message or ErrorCatalog.CONCURRENCY_CONFLICT.message
        details = {
            "message": message,
            "changes": [change.as_dict() for change in self.changes],
        }
        super().__init__(ErrorCatalog.CONCURRENCY_CONFLICT, details, message)
