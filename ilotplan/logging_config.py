"""Logging setup for layout runs: loguru sinks with optional JSON lines."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger


_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[stage]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

_RECORD_FIELDS = ("module", "function", "line")


class JSONFormatter:
    """One JSON object per record; bound ``extra`` values become top-level keys."""

    def __call__(self, record: dict[str, Any]) -> str:
        entry: dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "message": record["message"],
        }
        entry.update((key, record[key]) for key in _RECORD_FIELDS)

        exception = record["exception"]
        if exception is not None:
            entry["exception"] = {
                "type": exception.type.__name__ if exception.type else None,
                "value": str(exception.value) if exception.value is not None else None,
            }
        entry.update(record["extra"])

        # loguru treats the returned string as a format template
        text = json.dumps(entry, ensure_ascii=False, default=str)
        return text.replace("{", "{{").replace("}", "}}") + "\n"


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> list[int]:
    """Replace loguru's sinks with a stderr sink and an optional rotating file.

    Args:
        level: Minimum level for every sink.
        json_format: Emit JSON lines instead of the coloured console format.
        log_file: Optional log file; parent directories are created.

    Returns:
        The loguru handler ids that were added.
    """
    logger.remove()
    logger.configure(extra={"stage": "-"})
    fmt: Any = JSONFormatter() if json_format else _CONSOLE_FORMAT

    handler_ids = [logger.add(sys.stderr, format=fmt, level=level, colorize=not json_format)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(
            logger.add(
                log_file,
                format=fmt,
                level=level,
                rotation="10 MB",
                retention="7 days",
                compression="zip",
            )
        )
    return handler_ids


def get_logger(stage: str | None = None) -> Any:
    """Logger bound to a pipeline stage (``reconstruct``, ``placement``, ``routing``)."""
    if stage:
        return logger.bind(stage=stage)
    return logger
