"""Error Hierarchy — typed, categorized exceptions for all Knowledge Hub failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - Codes are stable: clients branch on them to render precise feedback
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with KnowledgeHubError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - State conflicts share RelationshipConflictError so callers can catch the family
"""

from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    principal_id: str | None = None
    counterparty_id: str | None = None
    operation: str | None = None


class KnowledgeHubError(Exception):
    """Base exception for all Knowledge Hub errors."""

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
                "context": {
                    "operation": self.context.operation,
                    "counterparty_id": self.context.counterparty_id,
                },
            }
        }


# ─── Request Errors (400-level) ─────────────────────────────────

class UnauthenticatedError(KnowledgeHubError):
    """No resolvable principal on the request."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Not authenticated", "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class RelationshipValidationError(KnowledgeHubError):
    """Missing or malformed input."""
    def __init__(
        self, message: str, field: str, context: ErrorContext | None = None,
        code: str = "VALIDATION_ERROR",
    ):
        super().__init__(
            message, code, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class InvalidSelfOperationError(RelationshipValidationError):
    """Principal named itself as the counterparty."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, field, context,
            code="INVALID_SELF_OPERATION",
        )


class ResourceNotFoundError(KnowledgeHubError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Relationship State Conflicts (409) ─────────────────────────

class RelationshipConflictError(KnowledgeHubError):
    """Stored relationship state does not allow the requested transition."""
    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class AlreadyFriendsError(RelationshipConflictError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "You are already friends with this user", "ALREADY_FRIENDS", context,
        )


class RequestAlreadySentError(RelationshipConflictError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Friend request already sent", "REQUEST_ALREADY_SENT", context,
        )


class ReciprocalRequestExistsError(RelationshipConflictError):
    """Target already requested the principal; accept instead of re-requesting."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "This user has already sent you a friend request. "
            "Please check your incoming requests.",
            "RECIPROCAL_REQUEST_EXISTS", context,
        )


class InvalidRequestStateError(RelationshipConflictError):
    """No matching pending request on one or both records."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No pending friend request found or the request is invalid.",
            "INVALID_REQUEST_STATE", context,
        )


class AlreadyFriendsConflictError(RelationshipConflictError):
    """Accept on a pair that is already resolved; residual requests were cleaned up."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Already friends. The request was invalid or already processed.",
            "ALREADY_FRIENDS_CONFLICT", context,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(KnowledgeHubError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class RelationshipOperationError(KnowledgeHubError):
    """Opaque failure of a relationship operation (store unavailable or timed out)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INTERNAL_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
