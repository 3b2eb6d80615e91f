"""Error Hierarchy — typed, categorized exceptions for every store failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; persistence errors (503) are critical
    - InvalidCredentialsError never states whether the user exists
    - No credential or internal detail leaked in user-facing messages

Design Decisions:
    - Single hierarchy with PalaverError base: one FastAPI handler renders all of them
    - ErrorContext as dataclass: carries username/operation for logs without a logging import
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    username: str | None = None
    operation: str | None = None
    record: str | None = None
    debug_info: dict[str, Any] | None = None


class PalaverError(Exception):
    """Base exception for all Palaver errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class AlreadyExistsError(PalaverError):
    """Registration conflict: the username is taken."""
    def __init__(self, username: str, context: ErrorContext | None = None):
        super().__init__(
            "Username already exists",
            "ALREADY_EXISTS", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.username = username


class InvalidCredentialsError(PalaverError):
    """Authentication failed. Same error for unknown user and wrong credential."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid username or password",
            "INVALID_CREDENTIALS", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class UnauthenticatedError(PalaverError):
    """Request carries no valid session."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Unauthorized",
            "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class EmptyBodyError(PalaverError):
    """Message body is empty after trimming."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Message body cannot be empty",
            "EMPTY_BODY", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class ValidationFailedError(PalaverError):
    """Malformed store request (missing recipient, bad sender, wrong mode)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_FAILED", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class RecipientNotFoundError(PalaverError):
    """Directed recipient is not registered (only when referential checks are on)."""
    def __init__(self, recipient: str, context: ErrorContext | None = None):
        super().__init__(
            f"Recipient '{recipient}' not found",
            "RECIPIENT_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.recipient = recipient


# ─── Infrastructure Errors (500-level) ──────────────────────────

class PersistenceFailureError(PalaverError):
    """Durable read or write failed. Never downgraded to an empty state."""
    def __init__(
        self, message: str, operation: str, record: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.operation = operation
        ctx.record = record
        super().__init__(
            f"Persistence {operation} of {record} failed: {message}",
            "PERSISTENCE_FAILURE", ErrorCategory.PERSISTENCE,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.operation = operation
        self.record = record

    def to_response(self) -> dict:
        """Hide file paths and OS details from clients."""
        response = super().to_response()
        response["error"]["message"] = "Storage is temporarily unavailable"
        return response
