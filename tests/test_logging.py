"""Tests for structured logging functionality."""

from __future__ import annotations

import json
import logging
import logging.handlers

import pytest

from habitstreak.config import BaseConfig
from habitstreak.logging_config import ROOT_LOGGER_NAME, JSONFormatter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _detach_handlers():
    yield
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()


def _record(**kwargs) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test.logger",
        level=kwargs.pop("level", logging.INFO),
        pathname="test.py",
        lineno=42,
        msg=kwargs.pop("msg", "Test message"),
        args=(),
        exc_info=kwargs.pop("exc_info", None),
    )
    record.module = "test_module"
    record.funcName = "test_function"
    for key, value in kwargs.items():
        setattr(record, key, value)
    return record


def test_json_formatter():
    """Test that JSONFormatter correctly formats log records."""
    log_data = json.loads(JSONFormatter().format(_record()))

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "test.logger"
    assert log_data["message"] == "Test message"
    assert log_data["module"] == "test_module"
    assert log_data["function"] == "test_function"
    assert log_data["line"] == 42
    assert "timestamp" in log_data
    assert "extra" not in log_data


def test_json_formatter_with_extra_fields():
    """Extra fields such as dates are serialized under ``extra``."""
    from datetime import date

    formatted = JSONFormatter().format(_record(user_habit_id=7, date=date(2024, 1, 2), streak=3))
    log_data = json.loads(formatted)

    assert log_data["extra"] == {"user_habit_id": 7, "date": "2024-01-02", "streak": 3}


def test_json_formatter_ignores_console_timestamp():
    """A record already formatted by the console handler carries ``asctime``."""
    record = _record(streak=1)
    logging.Formatter("%(asctime)s %(message)s").format(record)

    log_data = json.loads(JSONFormatter().format(record))

    assert log_data["extra"] == {"streak": 1}


def test_json_formatter_with_exception():
    """Test that JSONFormatter correctly handles exceptions."""
    import sys

    try:
        raise ValueError("Test error")
    except ValueError:
        exc_info = sys.exc_info()

    log_data = json.loads(
        JSONFormatter().format(_record(level=logging.ERROR, msg="Error occurred", exc_info=exc_info))
    )

    assert log_data["exception"]["type"] == "ValueError"
    assert "Test error" in log_data["exception"]["message"]
    assert log_data["exception"]["traceback"] is not None


def test_setup_logging(tmp_path):
    """Test that logging setup creates log files with rotation."""
    config = BaseConfig()
    config.DATA_DIR = str(tmp_path)
    config.DEV_MODE = True
    config.LOG_LEVEL = "INFO"

    logger = setup_logging(config)

    assert logger.name == "habitstreak"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 2  # Console + File

    log_file = tmp_path / "logs" / "habitstreak.log"
    assert log_file.exists()

    get_logger("services.tracker").info("Habit checked", extra={"user_habit_id": 1, "streak": 2})
    for handler in logger.handlers:
        handler.flush()

    entries = [json.loads(line) for line in log_file.read_text().splitlines() if line.strip()]
    assert entries[0]["message"] == "Logging initialized"
    checked = [e for e in entries if e["message"] == "Habit checked"]
    assert checked[0]["logger"] == "habitstreak.services.tracker"
    assert checked[0]["extra"] == {"user_habit_id": 1, "streak": 2}


def test_setup_logging_twice_does_not_duplicate_handlers(tmp_path):
    config = BaseConfig()
    config.DATA_DIR = str(tmp_path)

    setup_logging(config)
    logger = setup_logging(config)

    assert len(logger.handlers) == 2


def test_get_logger():
    """Test that get_logger returns properly namespaced loggers."""
    logger1 = get_logger("module1")
    logger2 = get_logger("module2")

    assert logger1.name == "habitstreak.module1"
    assert logger2.name == "habitstreak.module2"
    assert get_logger("habitstreak.services.badges").name == "habitstreak.services.badges"


@pytest.mark.parametrize("dev_mode", [True, False])
def test_logging_levels_by_mode(tmp_path, dev_mode):
    """Test that console logging level adjusts based on dev mode."""
    config = BaseConfig()
    config.DATA_DIR = str(tmp_path)
    config.DEV_MODE = dev_mode

    logger = setup_logging(config)

    console_handler = None
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, logging.handlers.RotatingFileHandler
        ):
            console_handler = handler
            break

    assert console_handler is not None

    expected_level = logging.INFO if dev_mode else logging.WARNING
    assert console_handler.level == expected_level
