"""Unit tests for logging configuration module.

Tests verify that setup_logging configures handlers and formats as requested,
and that run-scoped adapters and structured events carry their fields.
"""

import logging
from pathlib import Path

import pytest

from assistmesh_ai.agent_core.schemas.domain import OrchestrationEventType
from assistmesh_ai.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    RunLoggerAdapter,
    bind_run_logger,
    event_fields,
    get_logger,
    log_event,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _console_handler(root: logging.Logger) -> logging.Handler:
    handler = next(
        (h for h in root.handlers if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)),
        None,
    )
    assert handler is not None
    return handler


class TestSetupLogging:
    """Test setup_logging with different levels, formats and file logging."""

    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("WARNING", logging.WARNING),
            ("error", logging.ERROR),
        ],
    )
    def test_console_level(self, restore_root_logger, log_level, expected_level):
        setup_logging(log_level=log_level, enable_file=False)

        assert _console_handler(restore_root_logger).level == expected_level

    @pytest.mark.parametrize(
        "log_format,expected_format",
        [
            ("simple", SIMPLE_FORMAT),
            ("detailed", DETAILED_FORMAT),
            ("json", JSON_FORMAT),
        ],
    )
    def test_format(self, restore_root_logger, log_format, expected_format):
        setup_logging(log_format=log_format, enable_file=False)

        assert _console_handler(restore_root_logger).formatter._fmt == expected_format

    def test_file_logging_creates_log_file(self, restore_root_logger, tmp_path: Path):
        setup_logging(enable_file=True, log_file_dir=str(tmp_path / "logs"))

        file_handlers = [h for h in restore_root_logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename) == tmp_path / "logs" / "assistmesh_ai.log"

    def test_repeated_setup_does_not_duplicate_handlers(self, restore_root_logger):
        setup_logging(enable_file=False)
        setup_logging(enable_file=False)

        assert len(restore_root_logger.handlers) == 1

    def test_module_levels_applied(self, restore_root_logger):
        setup_logging(enable_file=False)

        for name, level in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(name).level == logging.getLevelName(level)


def test_get_logger_returns_named_logger() -> None:
    assert get_logger("assistmesh_ai.x") is logging.getLogger("assistmesh_ai.x")


def test_bind_run_logger_stamps_identity(caplog: pytest.LogCaptureFixture) -> None:
    adapter = bind_run_logger(logging.getLogger("assistmesh.test.run"), caller_id="c1", channel="sms", run_id="r1")

    with caplog.at_level(logging.INFO, logger="assistmesh.test.run"):
        adapter.info("hello", extra={"step_id": "step_1"})

    record = caplog.records[-1]
    assert isinstance(adapter, RunLoggerAdapter)
    assert (record.caller_id, record.channel, record.run_id) == ("c1", "sms", "r1")
    assert record.step_id == "step_1"


def test_bind_run_logger_rebinds_existing_adapter() -> None:
    base = logging.LoggerAdapter(logging.getLogger("assistmesh.test.outer"), {"tenant": "t1"})

    adapter = bind_run_logger(base, caller_id="c2", channel="whatsapp", run_id="r2")

    assert adapter.logger is base.logger
    assert adapter.extra == {"tenant": "t1", "caller_id": "c2", "channel": "whatsapp", "run_id": "r2"}


def test_log_event_attaches_event_and_fields(caplog: pytest.LogCaptureFixture) -> None:
    log = logging.getLogger("assistmesh.test.events")

    with caplog.at_level(logging.DEBUG, logger="assistmesh.test.events"):
        log_event(log, OrchestrationEventType.step_failed, level=logging.WARNING, step_id="step_2", timeout=True)

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.event == "step.failed"
    assert event_fields(record) == {"step_id": "step_2", "timeout": True}
    assert record.getMessage() == "step.failed step_id='step_2' timeout=True"


def test_log_event_truncates_long_values(caplog: pytest.LogCaptureFixture) -> None:
    log = logging.getLogger("assistmesh.test.events")

    with caplog.at_level(logging.INFO, logger="assistmesh.test.events"):
        log_event(log, "custom.event", text="x" * 500)

    record = caplog.records[-1]
    assert record.event == "custom.event"
    assert len(record.getMessage()) < 200
    assert event_fields(record)["text"] == "x" * 500
