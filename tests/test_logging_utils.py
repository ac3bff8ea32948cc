"""
Tests for logging utilities.

Tests cover:
- Extra fields appended by GuardFormatter
- setup_logging handlers and rotating log file
- GuardLogger event messages and levels
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from spreadguard.lib.logging_utils import (
    GuardFormatter,
    GuardLogger,
    setup_logging,
)


def make_record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord("spreadguard.test", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestGuardFormatter:
    """Tests for GuardFormatter."""

    def test_basic_format(self):
        output = GuardFormatter().format(make_record())
        assert "[INFO    ] spreadguard.test - hello" in output

    def test_extras_appended(self):
        output = GuardFormatter().format(make_record(position_id="P1", pips=50.0))
        assert output.endswith("[position_id=P1 pips=50.0]")

    def test_extras_can_be_disabled(self):
        output = GuardFormatter(include_extras=False).format(make_record(position_id="P1"))
        assert "position_id" not in output

    def test_private_attributes_skipped(self):
        output = GuardFormatter().format(make_record(_internal="x"))
        assert "_internal" not in output

    def test_no_colors_when_not_tty(self):
        output = GuardFormatter(use_colors=True).format(make_record())
        assert "\033[" not in output


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_console_only(self):
        root = setup_logging(level="WARNING")
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_file_handler(self, tmp_path):
        root = setup_logging(level="DEBUG", log_dir=str(tmp_path / "logs"), log_file="guard.log")

        file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1

        logging.getLogger("spreadguard.test").info("written")
        file_handlers[0].flush()
        assert "written" in (tmp_path / "logs" / "guard.log").read_text()

    def test_default_file_name(self, tmp_path):
        setup_logging(log_dir=str(tmp_path))
        assert any(p.name.startswith("spreadguard_") for p in tmp_path.iterdir())

    def test_unknown_level_defaults_to_info(self):
        assert setup_logging(level="chatty").level == logging.INFO


class TestGuardLogger:
    """Tests for GuardLogger event methods."""

    @pytest.fixture
    def guard_log(self):
        return GuardLogger("spreadguard.test.events")

    def test_window_event(self, guard_log, caplog, at):
        with caplog.at_level(logging.INFO, logger="spreadguard.test.events"):
            guard_log.window_event("SUSPEND", at(21, 0), window_end="22:00")

        record = caplog.records[-1]
        assert "WINDOW: SUSPEND" in record.getMessage()
        assert record.transition == "SUSPEND"
        assert record.window_end == "22:00"

    def test_stop_loss_event(self, guard_log, caplog):
        with caplog.at_level(logging.INFO, logger="spreadguard.test.events"):
            guard_log.stop_loss_event("REMOVED", "P1", 50.0)
            guard_log.stop_loss_event("REMOVED", "P2", None)

        assert "distance=50.0 pips" in caplog.records[0].getMessage()
        assert "distance=none" in caplog.records[1].getMessage()

    def test_order_event(self, guard_log, caplog):
        with caplog.at_level(logging.INFO, logger="spreadguard.test.events"):
            guard_log.order_event("CANCELLED", "LIMIT", "SELL", "EURUSD", 10000, 1.11,
                                  order_id="O1")

        record = caplog.records[-1]
        assert record.getMessage() == "ORDER: CANCELLED LIMIT SELL 10000 EURUSD @ 1.11"
        assert record.order_id == "O1"

    def test_risk_event_is_warning(self, guard_log, caplog):
        with caplog.at_level(logging.INFO, logger="spreadguard.test.events"):
            guard_log.risk_event("DRAWDOWN_CLOSE", "closed P3", position_id="P3")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.event_type == "DRAWDOWN_CLOSE"
