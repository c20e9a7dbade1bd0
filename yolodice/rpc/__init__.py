"""Wire protocol, correlation table and transport for the RPC connection."""

from .protocol import InboundMessage, InboundRequest, RpcError, RpcNotification, RpcRequest, RpcResponse
from .registry import BlockingConsumer, CallbackConsumer, CallRegistry, Consumer
from .serialization import (
    decode_message,
    encode_request_line,
    normalize_rpc_error,
    pack_params,
    safe_dict,
    unwrap_response,
)
from .transport import LineTransport

__all__ = [
    "InboundMessage",
    "InboundRequest",
    "RpcError",
    "RpcNotification",
    "RpcRequest",
    "RpcResponse",
    "BlockingConsumer",
    "CallbackConsumer",
    "CallRegistry",
    "Consumer",
    "LineTransport",
    "decode_message",
    "encode_request_line",
    "normalize_rpc_error",
    "pack_params",
    "safe_dict",
    "unwrap_response",
]
