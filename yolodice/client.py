"""JSON-RPC client multiplexing concurrent calls over one YOLOdice connection."""

from __future__ import annotations

import functools
import queue
import ssl
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol

from loguru import logger

from yolodice.config.schema import ClientConfig
from yolodice.identity.bitcoin import BitcoinMessageSigner
from yolodice.rpc.protocol import InboundRequest, RpcNotification, RpcRequest, RpcResponse
from yolodice.rpc.registry import BlockingConsumer, CallbackConsumer, CallRegistry
from yolodice.rpc.serialization import decode_message, encode_request_line, pack_params, safe_dict, unwrap_response
from yolodice.rpc.transport import LineTransport
from yolodice.utils.exceptions import (
    AuthenticationError,
    CallTimeoutError,
    ClientError,
    NotConnectedError,
    YolodiceError,
)

NotificationHandler = Callable[[RpcNotification], Any]
ResponseCallback = Callable[[RpcResponse], Any]


class ChallengeSigner(Protocol):
    """Credential operations used by ``authenticate``."""

    def derive_address(self, credential: str) -> str:
        ...

    def sign(self, credential: str, challenge: str) -> str:
        ...


class YolodiceClient:
    """Line-delimited JSON-RPC client over TCP (TLS by default).

    Any number of threads may call concurrently; one reader thread
    correlates responses by id and hands notifications to
    ``notification_handler``. Attributes not defined here are remote
    methods: ``client.read_user_data(id=1)`` is
    ``client.invoke("read_user_data", id=1)``. ``ssl_context`` replaces the
    default certificate-verifying context when TLS is enabled.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        ssl_context: ssl.SSLContext | None = None,
        **overrides: Any,
    ):
        self.config = (config or ClientConfig()).with_overrides(**overrides)
        self.ssl_context = ssl_context
        self.notification_handler: NotificationHandler | None = None

        self._transport: LineTransport | None = None
        self._registry = CallRegistry()
        self._lifecycle_lock = threading.Lock()
        self._stop = threading.Event()
        self._reader_thread: threading.Thread | None = None
        self._keepalive_thread: threading.Thread | None = None
        self._callback_pool: ThreadPoolExecutor | None = None
        self._notification_pool: ThreadPoolExecutor | None = None

    @property
    def connected(self) -> bool:
        transport = self._transport
        return transport is not None and not transport.closed

    @property
    def pending_calls(self) -> int:
        return len(self._registry)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        """Open the transport and start the reader and keepalive threads."""
        cfg = self.config
        with self._lifecycle_lock:
            if self.connected:
                raise ClientError("Already connected", code="ALREADY_CONNECTED")
            self._join_threads()
            transport = LineTransport.open(
                cfg.host,
                cfg.port,
                use_ssl=cfg.ssl,
                connect_timeout=cfg.connect_timeout,
                ssl_context=self.ssl_context,
                max_message_bytes=cfg.max_message_bytes,
            )
            logger.info("Connected to {}:{}", cfg.host, cfg.port)
            self._registry = CallRegistry()
            self._stop = threading.Event()
            self._callback_pool = ThreadPoolExecutor(
                max_workers=cfg.callback_workers, thread_name_prefix="yolodice-callback"
            )
            # One worker keeps notifications in arrival order.
            self._notification_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="yolodice-notify")
            self._transport = transport
            self._reader_thread = threading.Thread(
                target=self._reader_loop,
                args=(transport, self._registry, self._notification_pool, self._stop),
                name="yolodice-reader",
                daemon=True,
            )
            self._reader_thread.start()
            self._keepalive_thread = threading.Thread(
                target=self._keepalive_loop,
                args=(self._stop,),
                name="yolodice-keepalive",
                daemon=True,
            )
            self._keepalive_thread.start()
        return True

    def close(self) -> bool:
        """Close the transport and stop both background threads.

        Calls still pending are failed by the reader's teardown with
        ``ConnectionClosedError``.
        """
        logger.debug("Closing connection")
        with self._lifecycle_lock:
            self._stop.set()
            transport = self._transport
            if transport is not None:
                transport.close()
            self._join_threads()
            for pool in (self._callback_pool, self._notification_pool):
                if pool is not None:
                    pool.shutdown(wait=False)
            self._callback_pool = None
            self._notification_pool = None
        return True

    def _join_threads(self, timeout: float = 5.0) -> None:
        current = threading.current_thread()
        for thread in (self._reader_thread, self._keepalive_thread):
            if thread is not None and thread is not current:
                thread.join(timeout)

    def __enter__(self) -> YolodiceClient:
        self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def call(self, method: str, params: Any = None, *, timeout: float | None = None) -> Any:
        """Send a request and block until its response arrives.

        Returns the ``result``; raises ``RemoteError`` for an error response,
        ``ConnectionClosedError`` if the connection drops first and
        ``NotConnectedError`` when not connected.
        """
        transport = self._require_transport()
        consumer = BlockingConsumer()
        call_id = self._registry.allocate(consumer)
        logger.debug("Calling remote method {}({})", method, params if params is not None else "")
        self._send(transport, RpcRequest(id=call_id, method=method, params=params))
        timeout = timeout if timeout is not None else self.config.call_timeout
        try:
            response = consumer.wait(timeout)
        except queue.Empty:
            self._registry.discard(call_id)
            raise CallTimeoutError(method, timeout) from None
        return unwrap_response(response)

    def call_async(self, method: str, params: Any = None, callback: ResponseCallback | None = None) -> int:
        """Send a request without waiting; ``callback`` gets the response.

        The callback runs on a worker thread, exactly once, with an
        ``RpcResponse`` (use ``unwrap_response`` to get the value). Returns the
        call id.
        """
        transport = self._require_transport()
        pool = self._callback_pool
        if pool is None:
            raise NotConnectedError()
        consumer = CallbackConsumer(callback or _discard_response, pool, method)
        call_id = self._registry.allocate(consumer)
        logger.debug("Calling remote method {}({}) with an async callback", method, params if params is not None else "")
        self._send(transport, RpcRequest(id=call_id, method=method, params=params))
        return call_id

    def invoke(self, method: str, *args: Any, callback: ResponseCallback | None = None, **kwargs: Any) -> Any:
        """Call a remote method by name, packing arguments into ``params``."""
        params = pack_params(args, kwargs)
        if callback is not None:
            return self.call_async(method, params, callback)
        return self.call(method, params)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)
        return functools.partial(self.invoke, name)

    def _require_transport(self) -> LineTransport:
        transport = self._transport
        if transport is None or transport.closed:
            raise NotConnectedError()
        return transport

    def _send(self, transport: LineTransport, request: RpcRequest) -> None:
        line = encode_request_line(request)
        logger.debug(">>> {}", line)
        try:
            transport.write_line(line)
        except Exception:
            self._registry.discard(request.id)
            raise

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, credential: str, signer: ChallengeSigner | None = None) -> Any:
        """Prove ownership of an API key; returns the user record.

        Must run right after ``connect``: the server drops connections that
        do not authenticate promptly.
        """
        signer = signer or BitcoinMessageSigner()
        challenge = self.call("generate_auth_challenge")
        address = signer.derive_address(credential)
        signature = signer.sign(credential, challenge)
        user = self.call("auth_by_address", {"address": address, "signature": signature})
        if not user:
            raise AuthenticationError(address=address)
        row = safe_dict(user)
        logger.debug("Authenticated as user {}({})", row.get("name"), row.get("id"))
        return user

    # ------------------------------------------------------------------
    # Background threads
    # ------------------------------------------------------------------

    def _reader_loop(
        self,
        transport: LineTransport,
        registry: CallRegistry,
        notification_pool: ThreadPoolExecutor,
        stop: threading.Event,
    ) -> None:
        logger.debug("Listening thread started")
        reason = "connection closed"
        try:
            while True:
                try:
                    line = transport.read_line()
                except (OSError, ValueError, YolodiceError) as exc:
                    # ValueError: reading from a file closed by close().
                    if transport.closed:
                        reason = "connection closed by client"
                    else:
                        reason = f"connection lost: {exc}"
                        logger.error("Read failed, closing connection: {}", exc)
                    break
                if line is None:
                    reason = "connection closed by client" if transport.closed else "connection closed by server"
                    break
                if not line.strip():
                    continue
                try:
                    self._dispatch_line(line, registry, notification_pool)
                except Exception:
                    logger.exception("Failed to handle inbound message: {!r}", line[:200])
        finally:
            transport.close()
            drained = registry.drain_all(reason)
            stop.set()
            logger.info("Listening thread stopped ({}), {} pending call(s) failed", reason, drained)

    def _dispatch_line(self, raw: bytes, registry: CallRegistry, notification_pool: ThreadPoolExecutor) -> None:
        line = raw.decode("utf-8")
        logger.debug("<<< {}", line)
        message = decode_message(line)
        if isinstance(message, RpcResponse):
            if not registry.resolve(message.id, message):
                logger.warning("Response for unknown call id {}: {}", message.id, line[:200])
        elif isinstance(message, InboundRequest):
            logger.warning("Ignoring server request {} (id={}): not supported", message.method, message.id)
        else:
            handler = self.notification_handler
            if handler is not None:
                notification_pool.submit(self._run_notification_handler, handler, message)

    @staticmethod
    def _run_notification_handler(handler: NotificationHandler, message: RpcNotification) -> None:
        try:
            handler(message)
        except Exception:
            logger.exception("Notification handler failed for {}", message.method)

    def _keepalive_loop(self, stop: threading.Event) -> None:
        logger.debug("Pinging thread started")
        while not stop.wait(self.config.keepalive_interval):
            if not self.connected:
                break
            try:
                self.call_async(self.config.keepalive_method, callback=_log_keepalive_reply)
            except Exception as exc:
                logger.error("Keepalive failed: {}", exc)
        logger.debug("Pinging thread stopped")


def _discard_response(response: RpcResponse) -> None:
    return None


def _log_keepalive_reply(response: RpcResponse) -> None:
    if response.closed_reason is None and not response.ok:
        logger.warning("Keepalive call returned an error: {}", response.error)


__all__ = ["YolodiceClient", "ChallengeSigner"]
