"""
Pytest fixtures for spread guard tests.

This module provides:
- A paper broker with a fixed clock and a standard book of positions/orders
- Guard configs for the default 21:00-22:00 UTC window
- Helpers for building tick times
"""

import pytest
from datetime import datetime

from spreadguard.lib.config import DrawdownConfig, GuardConfig, WindowConfig
from spreadguard.lib.constants import UTC_TIMEZONE
from spreadguard.risk.controller import RiskController
from spreadguard.trading.broker import PendingOrderType, TradeType
from spreadguard.trading.paper_broker import PaperBroker


def _tick_time(hour: int, minute: int = 0, day: int = 15, month: int = 1) -> datetime:
    return datetime(2025, month, day, hour, minute, tzinfo=UTC_TIMEZONE)


@pytest.fixture
def at():
    """Build a UTC tick time on a January 2025 day: at(21, 0), at(0, 30, day=16)."""
    return _tick_time


@pytest.fixture
def broker():
    """Empty paper broker with 10,000 balance at 20:00 UTC."""
    return PaperBroker(balance=10_000.0, now=_tick_time(20, 0))


@pytest.fixture
def loaded_broker(broker):
    """
    Paper broker with a typical book.

    Positions:
        P1: EURUSD long, stop 50 pips below entry
        P2: USDJPY short, stop 40 pips above entry
        P3: EURUSD short, no stop
    Pending orders:
        O1: EURUSD sell limit
        O2: USDJPY buy stop with 30 pip stop-loss
    """
    broker.add_position("EURUSD", TradeType.BUY, 1.1000, stop_loss=1.0950,
                        volume=10_000, position_id="P1")
    broker.add_position("USDJPY", TradeType.SELL, 150.00, stop_loss=150.40,
                        volume=10_000, position_id="P2")
    broker.add_position("EURUSD", TradeType.SELL, 1.1050, volume=20_000, position_id="P3")
    broker.add_pending_order(PendingOrderType.LIMIT, TradeType.SELL, "EURUSD",
                             10_000, 1.1100, order_id="O1")
    broker.add_pending_order(PendingOrderType.STOP, TradeType.BUY, "USDJPY",
                             5_000, 151.00, stop_loss_pips=30, order_id="O2")
    return broker


@pytest.fixture
def guard_config():
    """Default 21:00-22:00 UTC window, 10% risk, 3 tick threshold."""
    return GuardConfig(
        window=WindowConfig(start_hour=21, start_minute=0, end_hour=22, end_minute=0),
        drawdown=DrawdownConfig(percent_risk=10.0, tick_threshold=3),
    )


@pytest.fixture
def controller(loaded_broker, guard_config):
    """Controller over the loaded broker."""
    return RiskController(loaded_broker, guard_config)
