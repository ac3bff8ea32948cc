"""
Structured logging utilities for the spread guard.

This module provides:
- Configured logging with rotation and formatting
- A formatter that appends ``extra`` fields as key=value pairs
- GuardLogger for window, stop-loss, order and risk events

Log Format:
    YYYY-MM-DD HH:MM:SS.mmm [LEVEL] module - message [key=value ...]

Example usage:
    from spreadguard.lib.logging_utils import setup_logging

    # Setup logging at application start
    setup_logging(level="INFO", log_dir="./logs")

    # Get logger in modules
    logger = logging.getLogger(__name__)
    logger.info("Stop loss removed", extra={"position_id": "42"})
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from spreadguard.lib.time_utils import get_now

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


# =============================================================================
# Log Formatting
# =============================================================================

class GuardFormatter(logging.Formatter):
    """
    Formatter for guard logs.

    Features:
    - Millisecond precision timestamps (UTC by default)
    - Colored output for terminal (optional)
    - Extra fields appended in key=value form
    """

    # ANSI color codes
    COLORS = {
        logging.DEBUG: "\033[36m",     # Cyan
        logging.INFO: "\033[32m",      # Green
        logging.WARNING: "\033[33m",   # Yellow
        logging.ERROR: "\033[31m",     # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(
        self,
        use_colors: bool = False,
        use_utc: bool = True,
        include_extras: bool = True
    ):
        """
        Initialize formatter.

        Args:
            use_colors: Enable ANSI colors for terminal output
            use_utc: Stamp records in UTC instead of local time
            include_extras: Include extra fields in output
        """
        self.use_colors = use_colors
        self.use_utc = use_utc
        self.include_extras = include_extras

        fmt = "[%(levelname)-8s] %(name)s - %(message)s"
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with timestamp, extras and optional colors."""
        if self.use_utc:
            timestamp = get_now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        else:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        message = super().format(record)

        if self.include_extras:
            extras = {
                k: v for k, v in record.__dict__.items()
                if k not in _RESERVED_ATTRS and not k.startswith("_")
            }
            if extras:
                extras_str = " ".join(f"{k}={v}" for k, v in extras.items())
                message = f"{message} [{extras_str}]"

        full_message = f"{timestamp} {message}"

        if self.use_colors and sys.stderr.isatty():
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{full_message}{self.RESET}"

        return full_message


# =============================================================================
# Logging Setup
# =============================================================================

def setup_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
    use_colors: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Setup application-wide logging configuration.

    Creates handlers for:
    - Console output (with colors if terminal)
    - File output with rotation (if log_dir provided)

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files (optional)
        log_file: Specific log file name (default: spreadguard_YYYY-MM-DD.log)
        use_colors: Enable colored console output
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Root logger
    """
    root_logger = logging.getLogger()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(GuardFormatter(use_colors=use_colors))
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        if not log_file:
            today = get_now().strftime("%Y-%m-%d")
            log_file = f"spreadguard_{today}.log"

        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(GuardFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    return root_logger


# =============================================================================
# Guard Logger
# =============================================================================

class GuardLogger:
    """
    Specialized logger for guard operations.

    Provides methods for logging:
    - Spread window transitions
    - Stop-loss removal and re-application
    - Pending order cancellation and restoration
    - Risk events (forced drawdown closures)

    All methods accept extra fields as kwargs for structured logging.
    """

    def __init__(self, name: str = "spreadguard"):
        """
        Initialize guard logger.

        Args:
            name: Logger name
        """
        self._logger = logging.getLogger(name)

    def window_event(self, transition: str, at: datetime, **kwargs: Any) -> None:
        """
        Log a spread window transition.

        Args:
            transition: SUSPEND or RESTORE
            at: Tick time of the transition
            **kwargs: Additional fields
        """
        self._logger.info(
            f"WINDOW: {transition} at {at.isoformat()}",
            extra={"transition": transition, **kwargs}
        )

    def stop_loss_event(
        self,
        action: str,
        position_id: str,
        pips: Optional[float],
        **kwargs: Any
    ) -> None:
        """
        Log a stop-loss removal or re-application.

        Args:
            action: REMOVED or REAPPLIED
            position_id: Position identifier
            pips: Stop-loss distance in pips
            **kwargs: Additional fields
        """
        pips_str = f"{pips:.1f} pips" if pips is not None else "none"
        self._logger.info(
            f"STOP LOSS: {action} position={position_id} distance={pips_str}",
            extra={"position_id": position_id, "pips": pips, **kwargs}
        )

    def order_event(
        self,
        action: str,
        order_type: str,
        side: str,
        symbol: str,
        volume: float,
        price: float,
        order_id: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """
        Log a pending order cancellation or restoration.

        Args:
            action: CANCELLED or RESTORED
            order_type: LIMIT or STOP
            side: BUY or SELL
            symbol: Instrument symbol
            volume: Volume in units
            price: Target price
            order_id: Order ID if available
            **kwargs: Additional fields
        """
        self._logger.info(
            f"ORDER: {action} {order_type} {side} {volume:g} {symbol} @ {price}",
            extra={"order_id": order_id, **kwargs}
        )

    def risk_event(self, event_type: str, details: str, **kwargs: Any) -> None:
        """
        Log a risk management event.

        Args:
            event_type: Event type (DRAWDOWN_CLOSE, CLOSE_FAILED, etc.)
            details: Event details
            **kwargs: Additional fields
        """
        self._logger.warning(
            f"RISK: {event_type} - {details}",
            extra={"event_type": event_type, **kwargs}
        )

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._logger.info(message, extra=kwargs)
