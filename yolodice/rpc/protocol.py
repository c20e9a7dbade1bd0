"""Wire-level message models for the line-delimited JSON-RPC connection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(slots=True)
class RpcError:
    """Normalized error object returned by the server."""

    code: int
    message: str
    data: dict[str, Any] | None = None


@dataclass(slots=True)
class RpcRequest:
    """Client-initiated call frame."""

    id: int
    method: str
    params: Any = None


@dataclass(slots=True)
class RpcResponse:
    """Response frame correlated to a call by ``id``.

    ``closed_reason`` is set only on synthetic responses produced when the
    connection is torn down before the server replied.
    """

    id: Any
    ok: bool
    result: Any = None
    error: RpcError | None = None
    closed_reason: str | None = None


@dataclass(slots=True)
class RpcNotification:
    """Unsolicited server message without an id."""

    method: str | None
    params: Any = None
    raw: dict[str, Any] | None = None


@dataclass(slots=True)
class InboundRequest:
    """Server-initiated request; the client does not serve these."""

    id: Any
    method: str | None
    params: Any = None


InboundMessage = Union[RpcResponse, RpcNotification, InboundRequest]
