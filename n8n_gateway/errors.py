# n8n_gateway/errors.py
from typing import Any
from pydantic import BaseModel, ConfigDict

# Standard JSON-RPC error codes
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
# Gateway error codes
SESSION_NOT_FOUND = -32001
BACKEND_UNREACHABLE = -32002
BACKEND_ERROR = -32003


class ErrorData(BaseModel):
    """Error information carried by every gateway failure."""

    code: int
    """The error type that occurred."""

    message: str
    """
    A short, human-readable description of the error. This is the text handed back
    to the calling client, so it must never contain credentials or tracebacks.
    """

    data: Any | None = None
    """
    Additional structured information about the error (e.g. the HTTP status
    returned by the backend).
    """

    model_config = ConfigDict(extra="allow")
