"""Error types for the panel.

Every panel-specific failure derives from ``PanelError``, which carries an
error code, a human readable message, an HTTP status and optional details.
The API layer turns these into JSON bodies of the form::

    {"error": "Instance not found", "code": "NOT_FOUND", "details": null}

Usage:
    from hydra_panel.core.errors import NotFoundError, ValidationError

    raise NotFoundError("Instance not found")
    raise ValidationError("Name must be between 3 and 32 characters")
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    SUSPENDED = "SUSPENDED"
    NOT_FOUND = "NOT_FOUND"
    REMOTE_ERROR = "REMOTE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Error response format."""

    error: str
    code: str
    details: Optional[Any] = None


class PanelError(Exception):
    """Base exception for the panel.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
        status_code: HTTP status code to return
        details: Extra context (upstream status/body, traceback in debug)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int,
        details: Any = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(
            error=self.message, code=self.code.value, details=self.details
        )


class ValidationError(PanelError):
    """400 Bad Request - missing or malformed input."""

    def __init__(self, message: str = "Missing parameters", details: Any = None) -> None:
        super().__init__(ErrorCode.VALIDATION_ERROR, message, 400, details)


class AuthenticationRequired(PanelError):
    """No user in the session; the API layer redirects to the login page."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(ErrorCode.UNAUTHENTICATED, message, 401)


class AuthorizationError(PanelError):
    """403 Forbidden - the user may not act on this instance."""

    def __init__(
        self,
        message: str = "Unauthorized access to this instance.",
        code: ErrorCode = ErrorCode.FORBIDDEN,
    ) -> None:
        super().__init__(code, message, 403)


class SuspendedError(AuthorizationError):
    """403 Forbidden - the instance is suspended."""

    def __init__(self, instance_id: str, message: str = "Instance is suspended") -> None:
        self.instance_id = instance_id
        super().__init__(message, ErrorCode.SUSPENDED)


class NotFoundError(PanelError):
    """404 Not Found."""

    def __init__(self, message: str = "Instance not found") -> None:
        super().__init__(ErrorCode.NOT_FOUND, message, 404)


class RemoteError(PanelError):
    """500 - the node agent failed or answered with malformed data.

    ``upstream_status`` and ``upstream_body`` are set when the agent answered.
    """

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        upstream_body: Any = None,
    ) -> None:
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
        details = None
        if upstream_status is not None:
            details = {"status": upstream_status, "body": upstream_body}
        super().__init__(ErrorCode.REMOTE_ERROR, message, 500, details)


class InternalError(PanelError):
    """500 - unexpected failure."""

    def __init__(self, message: str = "Internal server error", details: Any = None) -> None:
        super().__init__(ErrorCode.INTERNAL_ERROR, message, 500, details)
