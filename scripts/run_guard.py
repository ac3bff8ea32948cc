#!/usr/bin/env python3
"""
Spread Guard replay entry point.

Validates a guard configuration and replays a recorded tick scenario
through the RiskController against the in-memory paper broker. Use it to
check a new window or drawdown setting before attaching the guard to a
live account.

Usage:
    # Validate configuration only
    python scripts/run_guard.py --config config/guard.yaml --check-config

    # Replay a scenario
    python scripts/run_guard.py --scenario config/scenarios/rollover.yaml

    # Override window and risk parameters
    python scripts/run_guard.py --scenario config/scenarios/rollover.yaml \\
        --window-start 21:00 --window-end 22:00 --percent-risk 5 --tick-threshold 3

Scenario format (YAML):
    balance: 10000
    pip_sizes: {EURUSD: 0.0001}
    positions:
      - {id: P1, symbol: EURUSD, side: buy, entry_price: 1.1, stop_loss: 1.095, volume: 10000}
    pending_orders:
      - {id: O1, type: limit, side: sell, symbol: EURUSD, volume: 10000, price: 1.11}
    ticks:
      - {time: "2025-01-15T21:00:00", pnl: {P1: -250}}
      - {time: "2025-01-15T21:15:00", close: [P1]}
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, List, Tuple

import yaml

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from spreadguard.lib.config import (
    ConfigValidationError,
    GuardConfig,
    load_config,
    validate_config,
)
from spreadguard.lib.logging_utils import setup_logging
from spreadguard.lib.time_utils import parse_time
from spreadguard.risk.controller import RiskController, TickReport
from spreadguard.trading.broker import PendingOrderType, TradeType
from spreadguard.trading.paper_broker import PaperBroker

logger = logging.getLogger(__name__)


class ScenarioError(Exception):
    """Raised when a scenario file is malformed."""
    pass


def _parse_tick_time(value: Any) -> datetime:
    # PyYAML already turns unquoted ISO timestamps into datetimes
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise ScenarioError(f"Invalid tick time: {value!r}") from e


def load_scenario(path: str) -> Tuple[PaperBroker, List[dict]]:
    """
    Load a tick scenario into a paper broker.

    Args:
        path: Path to the scenario YAML file

    Returns:
        Tuple of (broker with initial positions/orders, list of tick dicts)

    Raises:
        FileNotFoundError: If the file does not exist
        ScenarioError: If the scenario is malformed
    """
    scenario_path = Path(path)
    if not scenario_path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")

    with open(scenario_path) as f:
        data = yaml.safe_load(f) or {}

    ticks = data.get("ticks") or []
    if not ticks:
        raise ScenarioError("Scenario has no ticks")

    broker = PaperBroker(
        balance=float(data.get("balance", 10_000.0)),
        pip_sizes=data.get("pip_sizes"),
    )

    try:
        for pos in data.get("positions") or []:
            broker.add_position(
                symbol=pos["symbol"],
                trade_type=TradeType(pos["side"].lower()),
                entry_price=float(pos["entry_price"]),
                stop_loss=pos.get("stop_loss"),
                gross_profit=float(pos.get("gross_profit", 0.0)),
                volume=float(pos.get("volume", 1000.0)),
                position_id=str(pos["id"]) if "id" in pos else None,
            )

        for order in data.get("pending_orders") or []:
            broker.add_pending_order(
                order_type=PendingOrderType(order["type"].lower()),
                trade_type=TradeType(order["side"].lower()),
                symbol=order["symbol"],
                volume=float(order["volume"]),
                target_price=float(order["price"]),
                stop_loss_pips=order.get("stop_loss_pips"),
                order_id=str(order["id"]) if "id" in order else None,
            )
    except (KeyError, ValueError, AttributeError) as e:
        raise ScenarioError(f"Invalid position/order entry: {e}") from e

    parsed_ticks = []
    for tick in ticks:
        if "time" not in tick:
            raise ScenarioError(f"Tick without time: {tick}")
        parsed_ticks.append({
            "time": _parse_tick_time(tick["time"]),
            "pnl": {str(k): float(v) for k, v in (tick.get("pnl") or {}).items()},
            "close": [str(p) for p in tick.get("close") or []],
            "balance": tick.get("balance"),
        })

    return broker, parsed_ticks


def replay(controller: RiskController, broker: PaperBroker, ticks: List[dict]) -> List[TickReport]:
    """
    Feed scenario ticks through the controller.

    Each tick first applies its market updates (P&L, external closes,
    balance) to the paper broker, then calls on_tick.

    Returns:
        One TickReport per tick
    """
    reports = []
    for tick in ticks:
        broker.set_time(tick["time"])
        for position_id, pnl in tick["pnl"].items():
            if broker.get_position(position_id) is not None:
                broker.set_gross_profit(position_id, pnl)
        for position_id in tick["close"]:
            broker.remove_position(position_id)
        if tick["balance"] is not None:
            broker.set_balance(float(tick["balance"]))

        report = controller.on_tick()
        if report.transitioned:
            logger.info(f"{tick['time'].isoformat()}: window state -> {report.state.value}")
        reports.append(report)

    return reports


def summarize(reports: List[TickReport], broker: PaperBroker) -> dict:
    """Build a replay summary."""
    closures = [c for r in reports for c in r.closures]
    return {
        "ticks": len(reports),
        "transitions": sum(1 for r in reports if r.transitioned),
        "final_state": reports[-1].state.value if reports else None,
        "forced_closures": [c.position_id for c in closures if c.success],
        "failed_calls": sum(len(r.failures) for r in reports),
        "open_positions": [p.position_id for p in broker.list_open_positions()],
        "pending_orders": len(broker.list_pending_orders()),
        "final_balance": broker.account_balance(),
    }


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Replay ticks through the spread risk guard',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to guard YAML config',
    )
    parser.add_argument(
        '--scenario',
        type=str,
        default=None,
        help='Path to tick scenario YAML',
    )
    parser.add_argument(
        '--check-config',
        action='store_true',
        help='Validate configuration and exit',
    )

    # Window
    parser.add_argument(
        '--window-start',
        type=str,
        default=None,
        help='Window start time (HH:MM, config timezone)',
    )
    parser.add_argument(
        '--window-end',
        type=str,
        default=None,
        help='Window end time (HH:MM, config timezone)',
    )

    # Drawdown
    parser.add_argument(
        '--percent-risk',
        type=float,
        default=None,
        help='Percent of balance tolerated as floating loss per position',
    )
    parser.add_argument(
        '--tick-threshold',
        type=int,
        default=None,
        help='Consecutive breaching ticks before forced close',
    )

    # Logging
    parser.add_argument(
        '--log-dir',
        type=str,
        default=None,
        help='Directory for rotating log files (overrides output.logs_dir)',
    )
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable verbose logging',
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging',
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> GuardConfig:
    """Load config and apply command line overrides."""
    config = load_config(args.config)

    if args.window_start:
        start = parse_time(args.window_start)
        config.window.start_hour, config.window.start_minute = start.hour, start.minute
    if args.window_end:
        end = parse_time(args.window_end)
        config.window.end_hour, config.window.end_minute = end.hour, end.minute
    if args.percent_risk is not None:
        config.drawdown.percent_risk = args.percent_risk
    if args.tick_threshold is not None:
        config.drawdown.tick_threshold = args.tick_threshold
    if args.log_dir:
        config.output.logs_dir = args.log_dir

    return config


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    level = "DEBUG" if args.debug else config.output.log_level
    if args.verbose and not args.debug:
        level = "INFO"
    setup_logging(level=level, log_dir=config.output.logs_dir, use_colors=config.output.use_colors)

    try:
        warnings = validate_config(config)
    except ConfigValidationError as e:
        logger.error(str(e))
        return 1

    for warning in warnings:
        logger.warning(f"Config: {warning}")

    if args.check_config:
        logger.info("Configuration OK")
        return 0

    if not args.scenario:
        logger.error("--scenario is required unless --check-config is given")
        return 1

    try:
        broker, ticks = load_scenario(args.scenario)
    except (FileNotFoundError, ScenarioError) as e:
        logger.error(str(e))
        return 1

    broker.set_time(ticks[0]["time"])
    controller = RiskController(broker, config)
    controller.on_start()
    reports = replay(controller, broker, ticks)
    controller.on_stop()

    summary = summarize(reports, broker)
    logger.info("=" * 60)
    for key, value in summary.items():
        logger.info(f"{key}: {value}")
    logger.info("=" * 60)

    return 0


if __name__ == '__main__':
    sys.exit(main())
