"""Encoding and decoding of JSON-RPC frames, one JSON object per line."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from yolodice.rpc.protocol import InboundMessage, InboundRequest, RpcError, RpcNotification, RpcRequest, RpcResponse
from yolodice.utils.exceptions import ConnectionClosedError, RemoteError


def safe_dict(value: Any) -> dict[str, Any]:
    """Return the value when dict-like, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def pack_params(args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> Any:
    """Fold positional/keyword arguments into a ``params`` value.

    No arguments give ``None`` (params omitted), keyword arguments or a single
    mapping give an object, anything else is sent as an array.
    """
    if kwargs:
        if args:
            raise TypeError("cannot mix positional and keyword arguments in a remote call")
        return dict(kwargs)
    if not args:
        return None
    if isinstance(args[0], Mapping):
        return dict(args[0])
    return list(args)


def encode_request_line(request: RpcRequest) -> str:
    """Encode a request frame into one line of JSON (without the newline)."""
    payload: dict[str, Any] = {"id": request.id, "method": request.method}
    if request.params is not None:
        payload["params"] = request.params
    return json.dumps(payload, ensure_ascii=False)


def normalize_rpc_error(error: Any) -> RpcError:
    """Normalize unknown error payloads into RpcError."""
    row = safe_dict(error)
    code = row.get("code")
    data = row.get("data")
    return RpcError(
        code=code if isinstance(code, int) else -1,
        message=str(row.get("message") or "RPC Error"),
        data=data if isinstance(data, dict) else None,
    )


def decode_message(line: str) -> InboundMessage:
    """Decode one inbound line into a response, notification or inbound request.

    Raises ``ValueError`` (including ``json.JSONDecodeError``) when the line is
    not a JSON object.
    """
    payload = json.loads(line)
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    msg_id = payload.get("id")
    if msg_id is not None and ("result" in payload or "error" in payload):
        if payload.get("error") is not None:
            return RpcResponse(id=msg_id, ok=False, error=normalize_rpc_error(payload["error"]))
        return RpcResponse(id=msg_id, ok=True, result=payload.get("result"))
    method = payload.get("method")
    method = str(method) if method is not None else None
    if msg_id is not None:
        return InboundRequest(id=msg_id, method=method, params=payload.get("params"))
    return RpcNotification(method=method, params=payload.get("params"), raw=payload)


def closed_response(call_id: Any, reason: str) -> RpcResponse:
    """Synthetic response delivered to calls pending at teardown."""
    return RpcResponse(id=call_id, ok=False, closed_reason=reason)


def to_remote_error(error: RpcError | None) -> RemoteError:
    """Convert an error object to RemoteError."""
    err = error or RpcError(code=-1, message="RPC Error")
    return RemoteError(err.code, err.message, err.data)


def unwrap_response(response: RpcResponse) -> Any:
    """Return the call result or raise the matching error."""
    if response.closed_reason is not None:
        raise ConnectionClosedError(response.closed_reason)
    if response.ok:
        return response.result
    raise to_remote_error(response.error)
