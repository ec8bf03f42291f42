"""Error taxonomy shared by every ReportFlow service.

Services raise these; callers map them to user-facing failures. The
``code`` attribute is stable and safe to expose, ``details`` carries
structured context (field errors, identifiers).
"""

from typing import Any


class ReportFlowError(Exception):
    """Base class for all ReportFlow errors."""

    code = "server_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


class ValidationError(ReportFlowError):
    """Raised when input is missing or malformed."""

    code = "validation_error"


class ConflictError(ReportFlowError):
    """Raised on a duplicate table name or other state collision."""

    code = "conflict"


class DuplicateValueError(ConflictError, ValidationError):
    """Raised when a unique field value already exists in a table."""

    code = "duplicate_value"


class StaleRecordError(ConflictError):
    """Raised when a record changed since the caller read it."""

    code = "stale_record"


class NotFoundError(ReportFlowError):
    """Raised when a schema or record does not exist."""

    code = "not_found"


class ModelNotFoundError(NotFoundError):
    """Raised when a table name does not resolve in the registry."""

    code = "model_not_found"


class NoContentError(NotFoundError):
    """Raised when an operation's target set is empty."""

    code = "no_content"


class UnauthorizedError(ReportFlowError):
    """Raised when the caller's role or scope does not cover the target."""

    code = "unauthorized"


class ForbiddenError(ReportFlowError):
    """Raised on ownership mismatch or an illegal state transition."""

    code = "forbidden"


class WindowClosedError(ReportFlowError):
    """Raised when a submission is attempted outside the timeline."""

    code = "window_closed"


class ServerError(ReportFlowError):
    """Raised for unexpected storage-layer failures."""

    code = "server_error"
