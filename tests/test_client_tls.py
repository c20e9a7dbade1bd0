"""Tests for calls over a TLS connection."""

from __future__ import annotations

import ssl
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from yolodice.client import YolodiceClient
from yolodice.config.schema import ClientConfig
from yolodice.utils.exceptions import ConnectionClosedError, NotConnectedError


@pytest.fixture
def make_tls_client(tls_rpc_server):
    clients: list[YolodiceClient] = []

    def factory(ssl_context: ssl.SSLContext | None) -> YolodiceClient:
        config = ClientConfig(host="127.0.0.1", port=tls_rpc_server.port, ssl=True, keepalive_interval=3600.0)
        client = YolodiceClient(config, ssl_context=ssl_context, call_timeout=5.0)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def tls_client(make_tls_client, tls_rpc_server, trusting_ssl_context):
    client = make_tls_client(trusting_ssl_context)
    client.connect()
    tls_rpc_server.wait_connected()
    return client


def test_call_over_tls(tls_client, tls_rpc_server):
    tls_rpc_server.auto_results["ping"] = "pong"
    assert tls_client.call("ping") == "pong"
    assert tls_rpc_server.next_request()["method"] == "ping"


def test_server_drop_over_tls_fails_pending_calls(tls_client, tls_rpc_server):
    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(tls_client.call, "never_answered")
        tls_rpc_server.next_request()
        tls_rpc_server.drop()
        with pytest.raises(ConnectionClosedError):
            future.result(timeout=2)

    deadline = time.monotonic() + 2
    while tls_client.connected and time.monotonic() < deadline:
        time.sleep(0.01)
    with pytest.raises(NotConnectedError):
        tls_client.call("ping")


def test_client_close_over_tls_unblocks_reader(tls_client, tls_rpc_server):
    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(tls_client.call, "never_answered")
        tls_rpc_server.next_request()
        tls_client.close()
        with pytest.raises(ConnectionClosedError):
            future.result(timeout=2)
    assert not tls_client._reader_thread.is_alive()


def test_default_context_rejects_untrusted_certificate(make_tls_client):
    client = make_tls_client(None)
    with pytest.raises(ssl.SSLError):
        client.connect()
    assert not client.connected
