"""Loguru helpers: the package is silent until a sink is attached."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger

PACKAGE = "yolodice"

_SINK_IDS: dict[str, int] = {}


def enable_logging(sink: Any, level: str = "INFO", **options: Any) -> int:
    """Route yolodice log records to ``sink``; returns the loguru sink id."""
    logger.enable(PACKAGE)
    return logger.add(sink, level=level, filter=PACKAGE, **options)


def disable_logging(sink_id: int | None = None) -> None:
    """Detach a sink added by ``enable_logging`` (or silence the package)."""
    if sink_id is not None:
        logger.remove(sink_id)
        return
    logger.disable(PACKAGE)


def ensure_rotating_log_file(name: str, level: str = "INFO", log_dir: Path | None = None) -> Path:
    """Ensure a rotating log sink for the given command name."""
    log_dir = log_dir or Path.home() / ".yolodice" / "logs"
    log_path = log_dir / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    log_dir.mkdir(parents=True, exist_ok=True)
    _SINK_IDS[name] = enable_logging(
        str(log_path),
        level=level,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    return log_path
