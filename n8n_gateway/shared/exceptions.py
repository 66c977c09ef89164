# n8n_gateway/shared/exceptions.py
"""Failure taxonomy for the gateway.

Every failure that can happen while dispatching an operation is one of the
variants below. Each variant knows how to render itself into the single text
field of a failed response envelope (`to_text`).
"""

from __future__ import annotations

from typing import Any

from n8n_gateway.errors import (
    BACKEND_ERROR,
    BACKEND_UNREACHABLE,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    SESSION_NOT_FOUND,
    ErrorData,
)

NOT_INITIALIZED_MESSAGE = "Client not initialized. Please run init-n8n first."
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


class GatewayError(Exception):
    """
    Base exception for every categorized gateway failure.
    """

    error: ErrorData

    def __init__(self, error: ErrorData):
        """Initialize GatewayError."""
        super().__init__(error.message)
        self.error = error

    @property
    def message(self) -> str:
        return self.error.message

    def to_text(self) -> str:
        return self.error.message


class ValidationError(GatewayError):
    """Caller arguments are missing or malformed. Never reaches the backend."""

    def __init__(self, message: str, *, operation: str | None = None, data: Any | None = None):
        self.operation = operation
        super().__init__(ErrorData(code=INVALID_PARAMS, message=message, data=data))

    def to_text(self) -> str:
        if self.operation is None:
            return self.error.message
        return f"Invalid arguments for {self.operation}: {self.error.message}"


class SessionError(GatewayError):
    """No session is registered under the supplied client id."""

    def __init__(self, session_id: Any | None = None):
        self.session_id = session_id
        super().__init__(ErrorData(code=SESSION_NOT_FOUND, message=NOT_INITIALIZED_MESSAGE))


class ConnectivityError(GatewayError):
    """The backend could not be reached (DNS, TLS, refused connection, timeout)."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(ErrorData(code=BACKEND_UNREACHABLE, message=detail))

    def to_text(self) -> str:
        return f"Failed to connect to n8n: {self.detail}"


class BackendError(GatewayError):
    """The backend answered with a non-2xx status."""

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        self.status_code = status_code
        data = {"status": status_code} if status_code is not None else None
        super().__init__(ErrorData(code=BACKEND_ERROR, message=detail, data=data))

    def to_text(self) -> str:
        return f"N8N API error: {self.detail}"


class UnknownError(GatewayError):
    """Any uncategorized exception, wrapped with its raw message."""

    def __init__(self, message: str | None = None):
        super().__init__(ErrorData(code=INTERNAL_ERROR, message=message or UNKNOWN_ERROR_MESSAGE))

    @classmethod
    def from_exception(cls, exc: BaseException) -> "UnknownError":
        return cls(str(exc))
