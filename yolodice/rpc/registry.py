"""Correlation table for calls awaiting a response on one connection."""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from concurrent.futures import Executor
from typing import Any, Protocol

from loguru import logger

from yolodice.rpc.protocol import RpcResponse
from yolodice.rpc.serialization import closed_response
from yolodice.utils.exceptions import ConnectionClosedError, ProtocolError


class Consumer(Protocol):
    """Receiver of exactly one response for a registered call."""

    def deliver(self, response: RpcResponse) -> None:
        ...


class BlockingConsumer:
    """Single-slot handoff for a caller blocked on its response."""

    __slots__ = ("_slot",)

    def __init__(self) -> None:
        self._slot: queue.Queue[RpcResponse] = queue.Queue(maxsize=1)

    def deliver(self, response: RpcResponse) -> None:
        self._slot.put_nowait(response)

    def wait(self, timeout: float | None = None) -> RpcResponse:
        """Block until the response arrives; raises ``queue.Empty`` on timeout."""
        return self._slot.get(timeout=timeout)


class CallbackConsumer:
    """Runs a callback with the response on an executor, off the reader thread."""

    __slots__ = ("_callback", "_executor", "_method")

    def __init__(self, callback: Callable[[RpcResponse], Any], executor: Executor, method: str = "") -> None:
        self._callback = callback
        self._executor = executor
        self._method = method

    def deliver(self, response: RpcResponse) -> None:
        try:
            self._executor.submit(self._run, response)
        except RuntimeError:
            # Executor already shut down during teardown.
            logger.debug("Callback pool closed, running callback for {} inline", self._method or response.id)
            self._run(response)

    def _run(self, response: RpcResponse) -> None:
        try:
            self._callback(response)
        except Exception:
            logger.exception("Callback for call {} ({}) raised", response.id, self._method)


class CallRegistry:
    """Id sequence and in-flight call table guarded by one lock.

    Ids are strictly increasing and never reused. Every registered id is
    removed exactly once: by its response, by ``discard`` or by ``drain_all``.
    Once drained, the registry refuses new registrations.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq = 0
        self._pending: dict[int, Consumer] = {}
        self._closed_reason: str | None = None

    def next_id(self) -> int:
        with self._lock:
            self._seq += 1
            return self._seq

    def register(self, call_id: int, consumer: Consumer) -> None:
        with self._lock:
            self._insert(call_id, consumer)

    def allocate(self, consumer: Consumer) -> int:
        """Issue a fresh id and register ``consumer`` under it as one step."""
        with self._lock:
            if self._closed_reason is not None:
                raise ConnectionClosedError(self._closed_reason)
            self._seq += 1
            call_id = self._seq
            self._insert(call_id, consumer)
            return call_id

    def _insert(self, call_id: int, consumer: Consumer) -> None:
        if self._closed_reason is not None:
            raise ConnectionClosedError(self._closed_reason)
        if call_id in self._pending:
            raise ProtocolError(f"call id {call_id} is already registered", {"id": call_id})
        self._pending[call_id] = consumer

    def resolve(self, call_id: Any, response: RpcResponse) -> bool:
        """Deliver ``response`` to the call registered under ``call_id``.

        Returns False when no such call is pending; the caller reports that as
        a protocol anomaly.
        """
        with self._lock:
            consumer = self._pending.pop(call_id, None)
        if consumer is None:
            return False
        consumer.deliver(response)
        return True

    def discard(self, call_id: int) -> Consumer | None:
        """Forget a call without delivering anything (timeout, failed write)."""
        with self._lock:
            return self._pending.pop(call_id, None)

    def drain_all(self, reason: str) -> int:
        """Fail every pending call with a connection-closed response."""
        with self._lock:
            if self._closed_reason is None:
                self._closed_reason = reason
            pending = self._pending
            self._pending = {}
        for call_id, consumer in pending.items():
            consumer.deliver(closed_response(call_id, reason))
        return len(pending)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed_reason is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, call_id: object) -> bool:
        with self._lock:
            return call_id in self._pending
