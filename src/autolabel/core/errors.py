"""Error classification system for autolabel.

Provides structured error types for the report pipeline and its
collaborators.

This module defines:
- ErrorCode: Enumeration of machine-readable error codes
- AutolabelError: Base exception class carrying a message and details
- Specific error classes for each category in the pipeline
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# Markers the PDS/Ozone services put in error bodies for stale sessions
EXPIRED_SESSION_MARKERS = ("ExpiredToken", "Unauthorized")


class ErrorCode(str, Enum):
    """Error codes for log records and diagnostics.

    These codes provide machine-readable error classification
    so operators can filter failures by category.
    """

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNRESOLVABLE_TARGET = "UNRESOLVABLE_TARGET"
    MODERATION_API_ERROR = "MODERATION_API_ERROR"
    MESSAGING_ERROR = "MESSAGING_ERROR"
    STORE_ERROR = "STORE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AutolabelError(Exception):
    """Base exception for autolabel errors.

    All autolabel-specific exceptions inherit from this class.

    Attributes:
        code: The error code for this exception type
        message: Human-readable error message
        details: Additional error details

    Example:
        raise AutolabelError("Something went wrong", details={"field": "value"})
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message
            details: Additional error details (optional)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to a structured record for logging.

        Returns:
            Dictionary with code, message and details
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(AutolabelError):
    """Invalid configuration.

    Raised at startup; the process must not begin polling.
    """

    code = ErrorCode.CONFIGURATION_ERROR


class UnresolvableTargetError(AutolabelError):
    """A command target cannot be mapped to a labelable subject.

    Raised by the target resolver, e.g. a post target on an account report.
    """

    code = ErrorCode.UNRESOLVABLE_TARGET


class XrpcError(AutolabelError):
    """An XRPC call to a PDS, Ozone or chat service failed.

    The string form is ``HTTP <status> <error>: <message>`` so that retry
    classification can match on the backend's error name or status.

    Attributes:
        status: HTTP status code, or None for transport failures
        error: XRPC error name (e.g. "InvalidRequest", "ExpiredToken")
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        error: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        text = message
        if error:
            text = f"{error}: {text}"
        if status is not None:
            text = f"HTTP {status} {text}"
        super().__init__(text, details)
        self.status = status
        self.error = error

    @property
    def is_auth_expired(self) -> bool:
        """Whether the failure means the session must be refreshed."""
        return self.status == 401 or is_auth_expired(self)


class ModerationApiError(XrpcError):
    """A moderation API or session call failed."""

    code = ErrorCode.MODERATION_API_ERROR


class MessagingError(XrpcError):
    """A direct message could not be delivered."""

    code = ErrorCode.MESSAGING_ERROR


class StoreError(AutolabelError):
    """A persisted store could not be written."""

    code = ErrorCode.STORE_ERROR


def is_auth_expired(exc: BaseException) -> bool:
    """Check whether an arbitrary error indicates an expired session.

    Args:
        exc: The exception to classify

    Returns:
        True if the error text carries an expired/unauthorized marker
    """
    text = str(exc)
    return any(marker in text for marker in EXPIRED_SESSION_MARKERS)
