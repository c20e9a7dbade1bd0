"""
Exception hierarchy for the yolodice client.

Provides:
- A base exception carrying an error code, category and details
- Local contract violations (not connected, authentication, timeouts)
- Remote errors reported by the server for a single call
- Connection teardown and framing errors
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    CLIENT = "client"
    REMOTE = "remote"
    CONNECTION = "connection"
    PROTOCOL = "protocol"
    TIMEOUT = "timeout"


class YolodiceError(Exception):
    """Base exception for all yolodice client errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.CLIENT,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ClientError(YolodiceError):
    """Local contract violation; fatal to the operation, not the connection."""

    def __init__(self, message: str, code: str = "CLIENT_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message, code=code, category=ErrorCategory.CLIENT, details=details)


class NotConnectedError(ClientError):
    """Raised when a call is attempted without an open transport."""

    def __init__(self, message: str = "Not connected"):
        super().__init__(message, code="NOT_CONNECTED")


class AuthenticationError(ClientError):
    """Raised when the server does not accept the signed challenge."""

    def __init__(self, message: str = "Authentication failed", address: str | None = None):
        details = {"address": address} if address else {}
        super().__init__(message, code="AUTH_FAILED", details=details)


class CallTimeoutError(ClientError):
    """Raised when a blocking call is not answered within its timeout."""

    def __init__(self, method: str, timeout_seconds: float):
        super().__init__(
            f"Call '{method}' timed out after {timeout_seconds}s",
            code="TIMEOUT",
            details={"method": method, "timeout_seconds": timeout_seconds},
        )
        self.category = ErrorCategory.TIMEOUT


class RemoteError(YolodiceError):
    """Error object returned by the server in response to a call.

    ``code`` and ``data`` mirror the server's error object. A 422 response
    carrying ``data.errors`` has the validation errors appended to the
    description verbatim.
    """

    def __init__(self, code: int = -1, message: str = "RPC Error", data: dict[str, Any] | None = None):
        description = f"{code}: {message}"
        if code == 422 and data and "errors" in data:
            description += ": " + json.dumps(data["errors"])
        super().__init__(
            description,
            code="REMOTE_ERROR",
            category=ErrorCategory.REMOTE,
            details={"code": code, "data": data},
        )
        self.code = code
        self.remote_message = message
        self.data = data

    def __str__(self) -> str:
        return self.message


class ConnectionClosedError(YolodiceError):
    """Raised to every pending caller when the transport goes away."""

    def __init__(self, reason: str = "connection closed"):
        super().__init__(reason, code="CONNECTION_CLOSED", category=ErrorCategory.CONNECTION)
        self.reason = reason


class ProtocolError(YolodiceError):
    """Framing or correlation violation on the wire."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code="PROTOCOL_ERROR", category=ErrorCategory.PROTOCOL, details=details)
