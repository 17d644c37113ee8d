"""
Error classification and client outcomes for imgvault.

Services raise ``ImgVaultError`` subclasses. Each subclass fixes a category,
a severity and a default error code; the category decides the HTTP status.
``AuthService.login`` and ``IngestionService`` turn errors into an
``Outcome``, the status code plus JSON body sent to the client. The body only
ever holds ``code`` and ``user_message``; the internal message and details are
logged, never returned.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .logging_config import log_error, log_security_event


class ErrorCategory(Enum):
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    STORAGE = "storage"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


CATEGORY_STATUS_CODES = {
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.DATABASE: 500,
    ErrorCategory.STORAGE: 500,
    ErrorCategory.SYSTEM: 500,
    ErrorCategory.UNKNOWN: 500,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"

SEVERITY_LOG_LEVELS = {
    ErrorSeverity.LOW: "info",
    ErrorSeverity.MEDIUM: "warning",
    ErrorSeverity.HIGH: "error",
    ErrorSeverity.CRITICAL: "critical",
}

DEFAULT_USER_MESSAGES = {
    ErrorCategory.AUTHENTICATION: "Unauthorized",
    ErrorCategory.VALIDATION: "Invalid request",
    ErrorCategory.NOT_FOUND: "Image not found",
    ErrorCategory.CONFLICT: "Resource already exists",
}


@dataclass
class ErrorInfo:
    """Snapshot of an error for logs and diagnostics."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    status_code: int

    def to_dict(self) -> dict[str, Any]:
        data = {name: getattr(self, name) for name in self.__dataclass_fields__}
        data["category"] = self.category.value
        data["severity"] = self.severity.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class Outcome:
    """Client-facing result of a service operation: status code plus JSON body."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ImgVaultError(Exception):
    """
    Base class for every failure raised inside imgvault.

    Subclasses override ``category``, ``severity`` and ``default_code``.
    Construction logs the error, so raising sites do not log separately.
    """

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.HIGH
    default_code: str | None = None
    # Validation messages describe the client's own input and are safe to show
    expose_message = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.code = code or self.default_code or f"{self.category.value}_error"
        self.user_message = user_message or self._default_user_message(message)
        self.details = details or {}
        self.status_code = status_code or CATEGORY_STATUS_CODES[self.category]
        self.original_exception = original_exception
        self.timestamp = datetime.now(UTC)
        self._log()

    def _default_user_message(self, message: str) -> str:
        if self.expose_message:
            return message
        return DEFAULT_USER_MESSAGES.get(self.category, INTERNAL_ERROR_MESSAGE)

    def _log(self) -> None:
        context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            **self.details,
        }
        if self.original_exception is not None:
            context["original_exception"] = repr(self.original_exception)

        log_error(self, context, level=SEVERITY_LOG_LEVELS[self.severity])
        if self.category is ErrorCategory.AUTHENTICATION:
            log_security_event(self.code, context=context)

    def get_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            status_code=self.status_code,
        )

    def to_outcome(self) -> Outcome:
        """Render the client-safe outcome for this error."""
        return Outcome(self.status_code, {"error": self.code, "message": self.user_message})


class AuthenticationError(ImgVaultError):
    """Bad credentials or a missing, expired or invalid session token."""

    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.MEDIUM
    default_code = "unauthorized"


class ValidationError(ImgVaultError):
    """Rejected client input. Raised before any side effect."""

    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW
    default_code = "invalid_request"
    expose_message = True


class NotFoundError(ImgVaultError):
    """The authenticated owner has no such image."""

    category = ErrorCategory.NOT_FOUND
    severity = ErrorSeverity.LOW
    default_code = "not_found"


class ConflictError(ImgVaultError):
    category = ErrorCategory.CONFLICT
    severity = ErrorSeverity.LOW
    default_code = "conflict"


class DatabaseError(ImgVaultError):
    category = ErrorCategory.DATABASE
    default_code = "database_error"


class StorageError(ImgVaultError):
    category = ErrorCategory.STORAGE
    default_code = "storage_error"


class CredentialHashError(ImgVaultError):
    """A stored password hash is malformed or the hashing parameters are invalid."""

    category = ErrorCategory.SYSTEM
    severity = ErrorSeverity.CRITICAL
    default_code = "credential_hash_error"


def outcome_from_exception(error: Exception, context: dict[str, Any] | None = None) -> Outcome:
    """
    Map any exception to a client-safe outcome.

    ``ImgVaultError`` instances keep their own status code. Anything else is
    logged with ``context`` and reported as a generic internal error.
    """
    if isinstance(error, ImgVaultError):
        return error.to_outcome()

    wrapped = ImgVaultError(
        str(error),
        details={"original_type": type(error).__name__, **(context or {})},
        original_exception=error,
    )
    return wrapped.to_outcome()
