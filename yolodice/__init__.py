"""
yolodice - JSON-RPC client for the YOLOdice API
"""

from loguru import logger

from yolodice.client import ChallengeSigner, YolodiceClient
from yolodice.config import ClientConfig, load_config
from yolodice.logging_utils import enable_logging
from yolodice.rpc import RpcNotification, RpcResponse, unwrap_response
from yolodice.utils.exceptions import (
    AuthenticationError,
    CallTimeoutError,
    ClientError,
    ConnectionClosedError,
    NotConnectedError,
    ProtocolError,
    RemoteError,
    YolodiceError,
)

__version__ = "0.1.0"

# Silent unless the application attaches a sink via enable_logging().
logger.disable("yolodice")

__all__ = [
    "__version__",
    "YolodiceClient",
    "ChallengeSigner",
    "ClientConfig",
    "load_config",
    "enable_logging",
    "RpcNotification",
    "RpcResponse",
    "unwrap_response",
    "YolodiceError",
    "ClientError",
    "NotConnectedError",
    "AuthenticationError",
    "CallTimeoutError",
    "RemoteError",
    "ConnectionClosedError",
    "ProtocolError",
]
