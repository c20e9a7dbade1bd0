"""Utility modules for yolodice."""

from yolodice.utils.exceptions import (
    AuthenticationError,
    CallTimeoutError,
    ClientError,
    ConnectionClosedError,
    ErrorCategory,
    NotConnectedError,
    ProtocolError,
    RemoteError,
    YolodiceError,
)

__all__ = [
    "YolodiceError",
    "ClientError",
    "NotConnectedError",
    "AuthenticationError",
    "CallTimeoutError",
    "RemoteError",
    "ConnectionClosedError",
    "ProtocolError",
    "ErrorCategory",
]
