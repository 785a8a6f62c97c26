"""
Exception hierarchy for the mail adapter.

Send-time failures are normalised into a SendResult by the dispatcher, so
these exceptions mostly travel between the credential providers, the
translator and the dispatcher.
"""

from typing import Any


class GraphMailError(Exception):
    """Base exception for mail adapter errors."""

    def __init__(
        self,
        message: str,
        code: str = "GRAPH_MAIL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize adapter exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class AuthError(GraphMailError):
    """Raised when the authority rejects a credential or token acquisition fails."""

    def __init__(
        self,
        message: str = "Authentication failed",
        code: str = "AUTH_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class TransportError(GraphMailError):
    """Raised when the remote mail API call fails."""

    def __init__(
        self,
        message: str = "Mail API request failed",
        status_code: int | None = None,
        retry_after: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "TRANSPORT_ERROR", details)
        self.status_code = status_code
        self.retry_after = retry_after


class ValidationError(GraphMailError):
    """Raised when a message is missing required fields (distinct from pydantic ValidationError)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", details)


class SendCancelledError(GraphMailError):
    """Raised when the caller cancels an in-flight send."""

    def __init__(self, message: str = "Send operation was cancelled") -> None:
        super().__init__(message, "SEND_CANCELLED")
