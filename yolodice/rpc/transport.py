"""Newline-delimited message transport over TCP, optionally wrapped in TLS."""

from __future__ import annotations

import socket
import ssl
import threading

from loguru import logger

from yolodice.utils.exceptions import ConnectionClosedError, ProtocolError

DEFAULT_MAX_MESSAGE_BYTES = 1024 * 1024


class LineTransport:
    """One JSON message per line over a connected socket.

    Reads belong to a single reader thread. Writes may come from any thread
    and are serialized so messages never interleave.
    """

    def __init__(self, sock: socket.socket, max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._max_message_bytes = max_message_bytes
        self._write_lock = threading.Lock()
        self._closed = threading.Event()

    @classmethod
    def open(
        cls,
        host: str,
        port: int,
        *,
        use_ssl: bool = True,
        connect_timeout: float | None = 10.0,
        ssl_context: ssl.SSLContext | None = None,
        max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES,
    ) -> LineTransport:
        """Connect to ``host:port``; raises ``OSError`` when unreachable."""
        if use_ssl:
            logger.debug("Connecting to {}:{} over SSL", host, port)
        else:
            logger.debug("Connecting to {}:{}", host, port)
        sock = socket.create_connection((host, port), timeout=connect_timeout)
        try:
            if use_ssl:
                context = ssl_context or ssl.create_default_context()
                sock = context.wrap_socket(sock, server_hostname=host)
            # Reads block until the server sends something; no read timeout.
            sock.settimeout(None)
        except (OSError, ssl.SSLError):
            sock.close()
            raise
        return cls(sock, max_message_bytes=max_message_bytes)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def read_line(self) -> bytes | None:
        """Read one raw message without its line ending; ``None`` at end of stream."""
        raw = self._reader.readline(self._max_message_bytes + 1)
        if not raw:
            return None
        if len(raw) > self._max_message_bytes and not raw.endswith(b"\n"):
            raise ProtocolError(
                f"inbound message exceeds {self._max_message_bytes} bytes",
                {"limit": self._max_message_bytes},
            )
        return raw.rstrip(b"\r\n")

    def write_line(self, line: str) -> None:
        data = (line + "\n").encode("utf-8")
        with self._write_lock:
            if self._closed.is_set():
                raise ConnectionClosedError("transport is closed")
            self._sock.sendall(data)

    def close(self) -> None:
        """Close the socket; unblocks a reader waiting in ``read_line``."""
        if self._closed.is_set():
            return
        self._closed.set()
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            logger.debug("Socket shutdown skipped: {}", exc)
        self._reader.close()
        self._sock.close()
