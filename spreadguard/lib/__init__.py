"""
Shared utilities library for the spread guard.

This module provides common utilities used across the codebase:
- constants: Window defaults, drawdown defaults, pip sizes
- time_utils: Timezone handling and HH:MM parsing
- config: Configuration loading from YAML and environment variables
- logging_utils: Structured logging with rotation and formatting
"""

from spreadguard.lib.constants import (
    UTC_TIMEZONE,
    DEFAULT_PERCENT_RISK,
    DEFAULT_TICK_THRESHOLD,
    default_pip_size,
)

from spreadguard.lib.time_utils import (
    get_zone,
    get_now,
    to_zone,
    combine,
    parse_time,
    format_time,
)

from spreadguard.lib.config import (
    GuardConfig,
    WindowConfig,
    DrawdownConfig,
    OutputConfig,
    ConfigValidationError,
    load_config,
    validate_config,
    config_to_dict,
    save_config,
)

from spreadguard.lib.logging_utils import (
    setup_logging,
    GuardLogger,
    GuardFormatter,
)

__all__ = [
    # Constants
    "UTC_TIMEZONE",
    "DEFAULT_PERCENT_RISK",
    "DEFAULT_TICK_THRESHOLD",
    "default_pip_size",
    # Time utilities
    "get_zone",
    "get_now",
    "to_zone",
    "combine",
    "parse_time",
    "format_time",
    # Config
    "GuardConfig",
    "WindowConfig",
    "DrawdownConfig",
    "OutputConfig",
    "ConfigValidationError",
    "load_config",
    "validate_config",
    "config_to_dict",
    "save_config",
    # Logging
    "setup_logging",
    "GuardLogger",
    "GuardFormatter",
]
