"""
Unified configuration management.

This module provides a centralized way to load, validate, and access
configuration for the spread guard. It supports:
- YAML file loading
- Environment variable overrides
- Type validation via dataclasses
- Default values from constants

Configuration Hierarchy (highest to lowest priority):
1. Environment variables (SPREADGUARD_*)
2. User-provided config file
3. Default values from constants.py

Example usage:
    # Load config with environment overrides
    config = load_config("config/guard.yaml")

    # Access typed config sections
    print(config.window.start_hour)
    print(config.drawdown.tick_threshold)
"""

import os
from dataclasses import asdict, dataclass, field
from datetime import time
from pathlib import Path
from typing import Any, Optional

import yaml

from spreadguard.lib.constants import (
    DEFAULT_TIMEZONE_NAME,
    DEFAULT_WINDOW_START_HOUR,
    DEFAULT_WINDOW_START_MINUTE,
    DEFAULT_WINDOW_END_HOUR,
    DEFAULT_WINDOW_END_MINUTE,
    DEFAULT_PERCENT_RISK,
    DEFAULT_TICK_THRESHOLD,
    MIN_PERCENT_RISK,
    MAX_PERCENT_RISK,
    MIN_TICK_THRESHOLD,
    HIGH_PERCENT_RISK_WARNING,
)
from spreadguard.lib.time_utils import get_zone, parse_time


# =============================================================================
# Configuration Dataclasses
# =============================================================================

@dataclass
class WindowConfig:
    """Daily spread window during which stops and pending orders are pulled."""
    start_hour: int = DEFAULT_WINDOW_START_HOUR
    start_minute: int = DEFAULT_WINDOW_START_MINUTE
    end_hour: int = DEFAULT_WINDOW_END_HOUR
    end_minute: int = DEFAULT_WINDOW_END_MINUTE
    # Clock the window boundaries are expressed in
    timezone: str = DEFAULT_TIMEZONE_NAME

    @property
    def start_time(self) -> time:
        return time(self.start_hour, self.start_minute)

    @property
    def end_time(self) -> time:
        return time(self.end_hour, self.end_minute)

    @property
    def crosses_midnight(self) -> bool:
        """True when the end falls on the day after the start."""
        return self.end_time < self.start_time


@dataclass
class DrawdownConfig:
    """Configuration for per-position drawdown protection."""
    # Percent of account balance tolerated as floating loss on one position
    percent_risk: float = DEFAULT_PERCENT_RISK
    # Consecutive breaching ticks before the position is closed
    tick_threshold: int = DEFAULT_TICK_THRESHOLD


@dataclass
class OutputConfig:
    """Configuration for logging output."""
    logs_dir: str = "./logs"
    log_level: str = "INFO"
    use_colors: bool = True


@dataclass
class GuardConfig:
    """Main configuration container."""
    window: WindowConfig = field(default_factory=WindowConfig)
    drawdown: DrawdownConfig = field(default_factory=DrawdownConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(
    config_path: Optional[str] = None,
    override_env: bool = True
) -> GuardConfig:
    """
    Load configuration from YAML file with optional environment overrides.

    Args:
        config_path: Path to YAML config file (optional)
        override_env: If True, apply environment variable overrides

    Returns:
        GuardConfig instance

    Example:
        config = load_config("config/guard.yaml")
        print(config.drawdown.percent_risk)  # 10.0
    """
    config = GuardConfig()

    if config_path:
        config = _load_from_yaml(config_path, config)

    if override_env:
        config = _apply_env_overrides(config)

    return config


def _load_from_yaml(config_path: str, base_config: GuardConfig) -> GuardConfig:
    """Load configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        yaml_data = yaml.safe_load(f)

    if yaml_data is None:
        return base_config

    if "window" in yaml_data:
        window_data = dict(yaml_data["window"] or {})
        # Allow "start: '21:00'" shorthand next to the hour/minute fields
        for prefix in ("start", "end"):
            if prefix in window_data:
                value = window_data.pop(prefix)
                if isinstance(value, int):
                    # Unquoted 21:00 is read by YAML 1.1 as base-60 minutes
                    value = "{}:{:02d}".format(*divmod(value, 60))
                parsed = parse_time(str(value))
                window_data[f"{prefix}_hour"] = parsed.hour
                window_data[f"{prefix}_minute"] = parsed.minute
        base_config.window = _update_dataclass(base_config.window, window_data)

    if "drawdown" in yaml_data:
        base_config.drawdown = _update_dataclass(base_config.drawdown, yaml_data["drawdown"])

    if "output" in yaml_data:
        base_config.output = _update_dataclass(base_config.output, yaml_data["output"])

    return base_config


def _update_dataclass(instance: Any, data: dict) -> Any:
    """Update dataclass fields from dictionary."""
    if not data:
        return instance

    field_names = set(instance.__dataclass_fields__)

    for key, value in data.items():
        # Accept dashed keys (e.g., percent-risk)
        normalized_key = key.replace(".", "_").replace("-", "_")

        if normalized_key in field_names:
            setattr(instance, normalized_key, value)

    return instance


def _apply_env_overrides(config: GuardConfig) -> GuardConfig:
    """Apply environment variable overrides to config."""

    if env_val := os.getenv("SPREADGUARD_PERCENT_RISK"):
        config.drawdown.percent_risk = float(env_val)

    if env_val := os.getenv("SPREADGUARD_TICK_THRESHOLD"):
        config.drawdown.tick_threshold = int(env_val)

    if env_val := os.getenv("SPREADGUARD_WINDOW_START"):
        start = parse_time(env_val)
        config.window.start_hour, config.window.start_minute = start.hour, start.minute

    if env_val := os.getenv("SPREADGUARD_WINDOW_END"):
        end = parse_time(env_val)
        config.window.end_hour, config.window.end_minute = end.hour, end.minute

    if env_val := os.getenv("SPREADGUARD_TIMEZONE"):
        config.window.timezone = env_val

    if env_val := os.getenv("SPREADGUARD_LOG_LEVEL"):
        config.output.log_level = env_val.upper()

    return config


# =============================================================================
# Configuration Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def validate_config(config: GuardConfig) -> list[str]:
    """
    Validate configuration values.

    Args:
        config: GuardConfig to validate

    Returns:
        List of validation warnings (empty if valid)

    Raises:
        ConfigValidationError: If critical validation fails
    """
    warnings = []
    errors = []

    window = config.window
    for name in ("start_hour", "end_hour"):
        value = getattr(window, name)
        if not isinstance(value, int) or not 0 <= value <= 23:
            errors.append(f"{name} ({value}) must be an integer in 0-23")
    for name in ("start_minute", "end_minute"):
        value = getattr(window, name)
        if not isinstance(value, int) or not 0 <= value <= 59:
            errors.append(f"{name} ({value}) must be an integer in 0-59")

    if not errors:
        if window.start_time == window.end_time:
            errors.append(
                f"window start and end are both {window.start_time.strftime('%H:%M')} - "
                f"the window would be empty"
            )
        elif window.crosses_midnight:
            warnings.append(
                f"window {window.start_time.strftime('%H:%M')}-{window.end_time.strftime('%H:%M')} "
                f"crosses midnight - end is taken on the following day"
            )

    try:
        get_zone(window.timezone)
    except ValueError as e:
        errors.append(str(e))

    drawdown = config.drawdown
    if (isinstance(drawdown.percent_risk, bool)
            or not isinstance(drawdown.percent_risk, (int, float))
            or not MIN_PERCENT_RISK <= drawdown.percent_risk <= MAX_PERCENT_RISK):
        errors.append(
            f"percent_risk ({drawdown.percent_risk!r}) must be a number between "
            f"{MIN_PERCENT_RISK:g} and {MAX_PERCENT_RISK:g}"
        )
    elif drawdown.percent_risk == 0:
        warnings.append(
            "percent_risk is 0 - every losing tick counts as a drawdown breach"
        )
    elif drawdown.percent_risk > HIGH_PERCENT_RISK_WARNING:
        warnings.append(
            f"percent_risk ({drawdown.percent_risk}) above {HIGH_PERCENT_RISK_WARNING:g}% "
            f"tolerates very large floating losses"
        )

    if not isinstance(drawdown.tick_threshold, int) or drawdown.tick_threshold < MIN_TICK_THRESHOLD:
        errors.append(
            f"tick_threshold ({drawdown.tick_threshold}) must be an integer >= {MIN_TICK_THRESHOLD}"
        )

    if errors:
        raise ConfigValidationError("Configuration validation failed:\n" +
                                    "\n".join(f"  - {e}" for e in errors))

    return warnings


# =============================================================================
# Configuration Export
# =============================================================================

def config_to_dict(config: GuardConfig) -> dict:
    """
    Convert GuardConfig to dictionary for serialization.

    Args:
        config: Configuration to convert

    Returns:
        Dictionary representation (YAML-safe)
    """
    return asdict(config)


def save_config(config: GuardConfig, path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration to save
        path: Output file path
    """
    with open(path, "w") as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False, sort_keys=False)
