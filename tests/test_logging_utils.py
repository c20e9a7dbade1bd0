"""Tests for yolodice.logging_utils."""

import io
from concurrent.futures import ThreadPoolExecutor

from loguru import logger

import yolodice  # noqa: F401
from yolodice.logging_utils import _SINK_IDS, disable_logging, enable_logging, ensure_rotating_log_file
from yolodice.rpc.protocol import RpcResponse
from yolodice.rpc.registry import CallbackConsumer


def _log_from_package() -> None:
    # Delivering to a shut-down pool logs at DEBUG from yolodice.rpc.registry.
    pool = ThreadPoolExecutor(max_workers=1)
    pool.shutdown()
    CallbackConsumer(lambda response: None, pool, "ping").deliver(RpcResponse(id=1, ok=True))


def test_package_is_silent_until_enabled() -> None:
    sink = io.StringIO()
    sink_id = logger.add(sink, level="DEBUG", filter="yolodice")
    try:
        _log_from_package()
    finally:
        logger.remove(sink_id)
    assert sink.getvalue() == ""


def test_enable_logging_routes_package_records() -> None:
    sink = io.StringIO()
    sink_id = enable_logging(sink, level="DEBUG", format="{name}: {message}")
    try:
        _log_from_package()
    finally:
        disable_logging(sink_id)
        disable_logging()
    assert "yolodice.rpc.registry: Callback pool closed" in sink.getvalue()


def test_rotating_log_file_is_added_once(tmp_path) -> None:
    path = ensure_rotating_log_file("test-cli", log_dir=tmp_path)
    sink_id = _SINK_IDS["test-cli"]
    try:
        assert ensure_rotating_log_file("test-cli", log_dir=tmp_path) == path == tmp_path / "test-cli.log"
        assert _SINK_IDS["test-cli"] == sink_id
    finally:
        logger.remove(_SINK_IDS.pop("test-cli"))
        disable_logging()
