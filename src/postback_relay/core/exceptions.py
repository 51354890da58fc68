"""
Custom exceptions for the postback relay.

Provides structured error handling with HTTP status codes and error
details. Only unexpected errors ever reach the caller as non-200 responses;
the domain errors below are recovered inside the pipeline.
"""

from typing import Any, Dict, Optional


class PostbackRelayException(Exception):
    """Base exception for the postback relay."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ValidationError(PostbackRelayException):
    """Raised when the inbound postback is missing a click id or has a negative payout."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="validation_error",
            details=details,
        )


class TransportError(PostbackRelayException):
    """Raised when an outbound GET cannot be completed."""

    TIMEOUT = "timeout"
    CONNECTION = "connection_error"
    SSL = "ssl_error"
    CLIENT = "client_error"

    def __init__(self, message: str, category: str = CLIENT) -> None:
        super().__init__(
            message=message,
            status_code=502,
            error_code="transport_error",
            details={"category": category},
        )
        self.category = category


class LogSinkError(PostbackRelayException):
    """Raised when the audit log cannot be written."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="log_sink_error",
            details=details,
        )
