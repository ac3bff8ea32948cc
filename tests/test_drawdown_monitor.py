"""
Tests for the debounced drawdown monitor.

Tests cover:
- Threshold computation from percent risk and live balance
- Consecutive-tick counting and full reset on a non-breaching tick
- Forced closure exactly on the tick_threshold-th consecutive breach
- Closure events (return value and callbacks)
- Failed closes and positions closed elsewhere
"""

from datetime import timedelta

import pytest
from unittest.mock import Mock

from spreadguard.lib.config import DrawdownConfig
from spreadguard.risk.drawdown_monitor import (
    DrawdownClosure,
    DrawdownMonitor,
    max_drawdown_amount,
)
from spreadguard.trading.broker import Broker, TradeType


@pytest.fixture
def monitor():
    """10% risk, 3 tick threshold."""
    return DrawdownMonitor(DrawdownConfig(percent_risk=10.0, tick_threshold=3))


@pytest.fixture
def position(broker):
    """Single EURUSD long in a 10,000 account."""
    return broker.add_position("EURUSD", TradeType.BUY, 1.1000, position_id="P1")


class TestMaxDrawdownAmount:
    """Tests for the loss tolerance."""

    def test_percent_of_balance(self):
        """10% of 10,000 is 1,000."""
        assert max_drawdown_amount(10.0, 10_000.0) == pytest.approx(1_000.0)

    def test_tracks_balance(self, monitor, broker, position):
        """The tolerance is recomputed from the balance every tick."""
        broker.set_gross_profit("P1", -900.0)
        monitor.evaluate(broker)
        assert monitor.counters == {}

        # Balance drops, 900 is now beyond 10%
        broker.set_balance(8_000.0)
        monitor.evaluate(broker)
        assert monitor.counters == {"P1": 1}


class TestDebounceCounter:
    """Tests for consecutive breach counting."""

    def test_reference_scenario(self, monitor, broker, position):
        """-1200, -1300, -1100 closes on tick 3; the 4th tick never sees it."""
        counts = []
        for loss in (-1200.0, -1300.0):
            broker.set_gross_profit("P1", loss)
            assert monitor.evaluate(broker) == []
            counts.append(monitor.counters.get("P1"))
        assert counts == [1, 2]

        broker.set_gross_profit("P1", -1100.0)
        closures = monitor.evaluate(broker)

        assert [c.position_id for c in closures] == ["P1"]
        assert closures[0].ticks == 3
        assert closures[0].success is True
        assert broker.get_position("P1") is None
        assert monitor.counters == {}

        # Position is gone, nothing left to evaluate
        assert monitor.evaluate(broker) == []

    def test_exact_threshold_counts_as_breach(self, monitor, broker, position):
        """A loss equal to the tolerance is a breach."""
        broker.set_gross_profit("P1", -1000.0)
        monitor.evaluate(broker)
        assert monitor.counters == {"P1": 1}

    def test_profit_never_breaches(self, monitor, broker, position):
        """Positive P&L never counts, even with a zero tolerance."""
        zero_risk = DrawdownMonitor(DrawdownConfig(percent_risk=0.0, tick_threshold=1))
        broker.set_gross_profit("P1", 0.0)
        assert zero_risk.evaluate(broker) == []
        broker.set_gross_profit("P1", 50.0)
        assert zero_risk.evaluate(broker) == []
        assert broker.get_position("P1") is not None

    @pytest.mark.parametrize("flags, expected", [
        ([True], [1]),
        ([True, True], [1, 2]),
        ([True, False], [1, None]),
        ([True, True, False, True], [1, 2, None, 1]),
        ([False, True, True, False, False, True], [None, 1, 2, None, None, 1]),
    ])
    def test_counter_is_length_of_breaching_suffix(self, broker, position, flags, expected):
        """After each tick the count equals the run of breaches ending at that tick."""
        monitor = DrawdownMonitor(DrawdownConfig(percent_risk=10.0, tick_threshold=100))
        observed = []
        for breach in flags:
            broker.set_gross_profit("P1", -1500.0 if breach else -500.0)
            monitor.evaluate(broker)
            observed.append(monitor.counters.get("P1"))
        assert observed == expected

    def test_interrupted_run_does_not_close(self, monitor, broker, position):
        """Breach, breach, recover, breach, breach does not reach 3."""
        for loss in (-1500.0, -1500.0, -200.0, -1500.0, -1500.0):
            broker.set_gross_profit("P1", loss)
            assert monitor.evaluate(broker) == []
        assert broker.get_position("P1") is not None
        assert monitor.counters == {"P1": 2}

    def test_threshold_of_one_closes_immediately(self, broker, position):
        """tick_threshold=1 closes on the first breaching tick."""
        monitor = DrawdownMonitor(DrawdownConfig(percent_risk=10.0, tick_threshold=1))
        broker.set_gross_profit("P1", -1001.0)
        closures = monitor.evaluate(broker)
        assert len(closures) == 1
        assert closures[0].ticks == 1

    def test_positions_counted_independently(self, monitor, broker, position):
        """Each position has its own counter."""
        broker.add_position("GBPUSD", TradeType.SELL, 1.2500, position_id="P2")
        broker.set_gross_profit("P1", -1500.0)
        broker.set_gross_profit("P2", -1500.0)
        monitor.evaluate(broker)

        broker.set_gross_profit("P2", 10.0)
        monitor.evaluate(broker)

        assert monitor.counters == {"P1": 2}

    def test_counter_pruned_when_position_disappears(self, monitor, broker, position):
        """A position closed elsewhere loses its counter."""
        broker.set_gross_profit("P1", -1500.0)
        monitor.evaluate(broker)
        broker.remove_position("P1")

        monitor.evaluate(broker)
        assert monitor.counters == {}


class TestClosureEvents:
    """Tests for closure reporting."""

    def test_callback_receives_event(self, monitor, broker, position, at):
        """Registered callbacks get the DrawdownClosure."""
        callback = Mock()
        monitor.on_position_closed(callback)
        broker.set_gross_profit("P1", -2000.0)

        for _ in range(3):
            monitor.evaluate(broker, now=at(14, 0))

        callback.assert_called_once()
        event = callback.call_args[0][0]
        assert isinstance(event, DrawdownClosure)
        assert event.position_id == "P1"
        assert event.symbol == "EURUSD"
        assert event.loss == -2000.0
        assert event.max_drawdown_amount == pytest.approx(1_000.0)
        assert event.timestamp == at(14, 0)
        assert event.to_dict()["success"] is True

    def test_callback_error_does_not_break_tick(self, monitor, broker, position):
        """A failing callback is logged and ignored."""
        monitor.on_position_closed(Mock(side_effect=RuntimeError("notifier down")))
        broker.set_gross_profit("P1", -2000.0)

        for _ in range(3):
            closures = monitor.evaluate(broker)

        assert len(closures) == 1
        assert broker.get_position("P1") is None

    def test_timestamp_defaults_to_aware_utc(self, monitor, broker, position):
        """Without a tick time the closure and its outcome are stamped in UTC."""
        broker.set_gross_profit("P1", -2000.0)

        for _ in range(3):
            closures = monitor.evaluate(broker)

        assert closures[0].timestamp.utcoffset() == timedelta(0)
        assert closures[0].outcome.timestamp.utcoffset() == timedelta(0)

    def test_failed_close_resets_counter(self, monitor, broker, position):
        """A rejected close is reported and counting restarts from 1."""
        broker.inject_failure("close_position", target_id="P1")
        broker.set_gross_profit("P1", -2000.0)

        for _ in range(3):
            closures = monitor.evaluate(broker)

        assert len(closures) == 1
        assert closures[0].success is False
        assert broker.get_position("P1") is not None
        assert monitor.counters == {}

        monitor.evaluate(broker)
        assert monitor.counters == {"P1": 1}

    def test_balance_unavailable_skips_tick(self, monitor):
        """If the balance cannot be read no position is evaluated."""
        broker = Mock(spec=Broker)
        broker.list_open_positions.return_value = []
        broker.account_balance.side_effect = ConnectionError("timeout")

        assert monitor.evaluate(broker) == []
        broker.close_position.assert_not_called()
