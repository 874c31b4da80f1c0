"""Error Hierarchy — typed, categorized exceptions for all Good Faith failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors are recoverable by the caller; infrastructure errors are critical
    - to_response() produces a flat error envelope for any host surface
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with GoodFaithError base: hosts catch one type for uniform error shape
    - ErrorContext as dataclass: rich observability without coupling to logging framework
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
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    STORE = "store"
    EXTERNAL_API = "external_api"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    question_id: str | None = None
    contradiction_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class GoodFaithError(Exception):
    """Base exception for all Good Faith errors."""

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
        """Convert to standardized error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user_id": self.context.user_id,
                    "question_id": self.context.question_id,
                    "contradiction_id": self.context.contradiction_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class EntityValidationError(GoodFaithError):
    """Entity construction or input failed an invariant."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class ResourceNotFoundError(GoodFaithError):
    """Requested session, question or contradiction does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ContradictionAlreadyResolvedError(GoodFaithError):
    """Resolution fields transition exactly once."""
    def __init__(self, contradiction_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Contradiction '{contradiction_id}' is already resolved",
            "CONTRADICTION_ALREADY_RESOLVED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.contradiction_id = contradiction_id


class StageAdvanceBlockedError(GoodFaithError):
    """Stage transition guard rejected advancement."""
    def __init__(self, reason: str, error_code: str, context: ErrorContext | None = None):
        super().__init__(
            reason, error_code, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400,
        )


class ConcurrencyError(GoodFaithError):
    """A mutating call for the same user is already in flight."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class GraphStoreError(GoodFaithError):
    """Graph store operation failed — not recoverable locally."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Graph store {operation} failed: {message}",
            "STORE_ERROR", ErrorCategory.STORE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class OracleUnavailableError(GoodFaithError):
    """Inference or embedding oracle failed, timed out, or returned unparseable output."""
    def __init__(
        self,
        message: str,
        oracle: str,
        reason: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        category = ErrorCategory.TIMEOUT if reason == "timeout" else ErrorCategory.EXTERNAL_API
        super().__init__(
            f"{oracle} unavailable ({reason}): {message}",
            "ORACLE_UNAVAILABLE", category,
            ErrorSeverity.WARNING, ctx, 503,
        )
        self.oracle = oracle
        self.reason = reason
