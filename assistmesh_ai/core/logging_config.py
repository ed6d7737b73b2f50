"""
Logging Configuration Module.

This module provides centralized logging configuration for AssistMesh-AI.
Every module logs through ``logging.getLogger(__name__)``; the orchestration
core additionally emits *events* (plan creation, step results, replans, the
final reply) through ``log_event`` so that each record carries a machine
readable ``event`` name and its fields in ``record.event_fields``.

Features:
- Configurable log levels per module
- Console and optional file logging
- Simple, detailed or JSON line formats
- Run-scoped logger adapters carrying caller/channel/run identifiers
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Union

from assistmesh_ai.core.config import settings

RunLogger = Union[logging.Logger, logging.LoggerAdapter]

# Define log formats
SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"module": "%(filename)s", "function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)

# Module-specific log levels
MODULE_LOG_LEVELS = {
    "assistmesh_ai.agent_core": "DEBUG",
    "assistmesh_ai.agent_core.planning": "DEBUG",
    "assistmesh_ai.agent_core.runtime": "DEBUG",
    "assistmesh_ai.agent_core.composer": "DEBUG",
    "assistmesh_ai.agent_core.service": "DEBUG",
    # Third-party libraries (reduce noise)
    "httpx": "WARNING",
    "asyncio": "WARNING",
    "langgraph": "WARNING",
    "pydantic_ai": "INFO",
}


def _format_string(fmt: str) -> str:
    if fmt == "json":
        return JSON_FORMAT
    if fmt == "simple":
        return SIMPLE_FORMAT
    return DETAILED_FORMAT


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: Optional[bool] = None,
    log_file_dir: Optional[str] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Override default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Override default format (simple, detailed, json)
        enable_file: Whether to enable file logging
        log_file_dir: Directory that receives ``assistmesh_ai.log``
    """
    level = (log_level or settings.log_level).upper()
    fmt = log_format or settings.log_format
    file_enabled = settings.enable_file_logging if enable_file is None else enable_file

    formatter = logging.Formatter(_format_string(fmt), datefmt="%Y-%m-%d %H:%M:%S")

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all levels, filter at handler level

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_enabled:
        directory = Path(log_file_dir or settings.log_file_dir)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(directory / "assistmesh_ai.log")
        file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(module_name).setLevel(module_level)

    root_logger.info(f"Logging configured: level={level}, format={fmt}, file_logging={file_enabled}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The module name (typically __name__)

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name)


class RunLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps every record with the run identity.

    Extra values passed at call sites are merged with (not replaced by) the
    adapter's own context.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def bind_run_logger(
    base: Optional[RunLogger] = None,
    *,
    caller_id: str,
    channel: str,
    run_id: str,
) -> RunLoggerAdapter:
    """Wrap ``base`` (or this module's logger) with the run's identifiers."""
    if isinstance(base, logging.LoggerAdapter):
        inner = base.logger
        context: dict[str, Any] = dict(base.extra or {})
    else:
        inner = base or logging.getLogger("assistmesh_ai.agent_core.run")
        context = {}
    context.update({"caller_id": caller_id, "channel": channel, "run_id": run_id})
    return RunLoggerAdapter(inner, context)


def log_event(
    logger: RunLogger,
    event: Union[Enum, str],
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit one structured orchestration event.

    The message reads ``<event> key=value ...``; the raw values are attached to
    the record as ``event`` and ``event_fields``.
    """
    name = event.value if isinstance(event, Enum) else str(event)
    rendered = " ".join(f"{key}={_short(value)}" for key, value in fields.items())
    logger.log(
        level,
        f"{name} {rendered}".rstrip(),
        extra={"event": name, "event_fields": dict(fields)},
    )


def _short(value: Any, limit: int = 120) -> str:
    text = repr(value) if isinstance(value, str) else str(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


def event_fields(record: logging.LogRecord) -> Mapping[str, Any]:
    """Return the structured fields attached by ``log_event`` (empty if none)."""
    return getattr(record, "event_fields", {}) or {}
