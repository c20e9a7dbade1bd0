"""Pytest hooks and fixtures."""

from __future__ import annotations

import datetime
import ipaddress
import json
import queue
import socket
import ssl
import threading
from pathlib import Path
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from yolodice.client import YolodiceClient
from yolodice.config.schema import ClientConfig


class FakeRpcServer:
    """Single-client line-delimited JSON server on localhost.

    Every request is queued for the test to inspect and answer; methods
    listed in ``auto_results`` are answered immediately.
    """

    def __init__(self, ssl_context: ssl.SSLContext | None = None) -> None:
        self._ssl_context = ssl_context
        self._listener = socket.create_server(("127.0.0.1", 0))
        self.port: int = self._listener.getsockname()[1]
        self.requests: queue.Queue[dict[str, Any]] = queue.Queue()
        self.auto_results: dict[str, Any] = {}
        self._conn: socket.socket | None = None
        self._connected = threading.Event()
        self._write_lock = threading.Lock()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            conn, _ = self._listener.accept()
            if self._ssl_context is not None:
                conn = self._ssl_context.wrap_socket(conn, server_side=True)
        except OSError:
            return
        self._conn = conn
        self._connected.set()
        try:
            with conn.makefile("rb") as reader:
                for raw in reader:
                    payload = json.loads(raw)
                    method = payload.get("method")
                    if method in self.auto_results:
                        self.reply(payload["id"], result=self.auto_results[method])
                    self.requests.put(payload)
        except (OSError, ValueError):
            return

    def wait_connected(self, timeout: float = 2.0) -> None:
        assert self._connected.wait(timeout), "client never connected"

    def next_request(self, timeout: float = 2.0) -> dict[str, Any]:
        return self.requests.get(timeout=timeout)

    def send(self, message: dict[str, Any] | str) -> None:
        line = message if isinstance(message, str) else json.dumps(message)
        self.send_raw((line + "\n").encode("utf-8"))

    def send_raw(self, data: bytes) -> None:
        assert self._conn is not None
        with self._write_lock:
            self._conn.sendall(data)

    def reply(self, call_id: Any, *, result: Any = None, error: dict[str, Any] | None = None) -> None:
        if error is not None:
            self.send({"id": call_id, "error": error})
        else:
            self.send({"id": call_id, "result": result})

    def drop(self) -> None:
        """Close the client connection from the server side."""
        if self._conn is None:
            return
        try:
            self._conn.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._conn.close()

    def close(self) -> None:
        self.drop()
        self._listener.close()


@pytest.fixture
def rpc_server():
    server = FakeRpcServer()
    yield server
    server.close()


@pytest.fixture
def make_client(rpc_server):
    """Factory for clients pointed at the fake server (closed on teardown)."""
    clients: list[YolodiceClient] = []

    def factory(**overrides: Any) -> YolodiceClient:
        settings = {
            "host": "127.0.0.1",
            "port": rpc_server.port,
            "ssl": False,
            "keepalive_interval": 3600.0,
            "call_timeout": 5.0,
        }
        settings.update(overrides)
        client = YolodiceClient(ClientConfig(**settings))
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def client(make_client, rpc_server):
    c = make_client()
    c.connect()
    rpc_server.wait_connected()
    return c


def _write_test_certificates(directory: Path) -> tuple[Path, Path, Path]:
    """Issue a throwaway CA and a 127.0.0.1/localhost server certificate signed by it."""
    now = datetime.datetime.now(datetime.timezone.utc)
    valid_from, valid_to = now - datetime.timedelta(days=1), now + datetime.timedelta(days=1)

    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "yolodice test CA")])
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(ca_name)
        .issuer_name(ca_name)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(valid_from)
        .not_valid_after(valid_to)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key()), critical=False)
        .sign(ca_key, hashes.SHA256())
    )

    server_key = ec.generate_private_key(ec.SECP256R1())
    server_cert = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")]))
        .issuer_name(ca_name)
        .public_key(server_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(valid_from)
        .not_valid_after(valid_to)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.SubjectAlternativeName(
                [x509.DNSName("localhost"), x509.IPAddress(ipaddress.ip_address("127.0.0.1"))]
            ),
            critical=False,
        )
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(server_key.public_key()), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()), critical=False
        )
        .sign(ca_key, hashes.SHA256())
    )

    ca_path = directory / "ca.pem"
    cert_path = directory / "server.pem"
    key_path = directory / "server-key.pem"
    ca_path.write_bytes(ca_cert.public_bytes(serialization.Encoding.PEM))
    cert_path.write_bytes(server_cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        server_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return ca_path, cert_path, key_path


@pytest.fixture(scope="session")
def tls_certificates(tmp_path_factory):
    """(ca, server certificate, server key) PEM paths."""
    return _write_test_certificates(tmp_path_factory.mktemp("tls"))


@pytest.fixture
def tls_rpc_server(tls_certificates):
    _, cert_path, key_path = tls_certificates
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(str(cert_path), str(key_path))
    server = FakeRpcServer(ssl_context=context)
    yield server
    server.close()


@pytest.fixture
def trusting_ssl_context(tls_certificates) -> ssl.SSLContext:
    """Client context that verifies against the throwaway CA."""
    ca_path, _, _ = tls_certificates
    return ssl.create_default_context(cafile=str(ca_path))
