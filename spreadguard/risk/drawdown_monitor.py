"""
Drawdown Monitor.

Closes any position whose floating loss has stayed at or beyond a
percent-of-balance threshold for a number of consecutive ticks.

Per tick:
- max_drawdown_amount = percent_risk / 100 * account balance
  (recomputed every tick so the tolerance tracks the account)
- A position breaches when gross_profit < 0 and |gross_profit| >= max_drawdown_amount
- Breaching ticks are counted per position; the first non-breaching tick
  removes the count entirely
- When the count reaches tick_threshold the position is closed

The debounce keeps a single-tick spike from closing a position while still
bounding the loss to roughly max_drawdown_amount plus slippage over
tick_threshold ticks.

The monitor runs on every tick, including inside the spread window.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
import logging

from spreadguard.lib.config import DrawdownConfig
from spreadguard.lib.logging_utils import GuardLogger
from spreadguard.lib.time_utils import get_now
from spreadguard.trading.broker import (
    ActionOutcome,
    Broker,
    BrokerAction,
    call_broker,
    snapshot,
)

logger = logging.getLogger(__name__)
guard_log = GuardLogger(__name__)


@dataclass
class DrawdownClosure:
    """Event emitted when the monitor force-closes a position."""
    position_id: str
    symbol: str
    loss: float
    max_drawdown_amount: float
    ticks: int
    outcome: ActionOutcome
    timestamp: datetime = field(default_factory=get_now)

    @property
    def success(self) -> bool:
        return self.outcome.success

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/reporting."""
        return {
            "position_id": self.position_id,
            "symbol": self.symbol,
            "loss": self.loss,
            "max_drawdown_amount": self.max_drawdown_amount,
            "ticks": self.ticks,
            "success": self.success,
            "timestamp": self.timestamp.isoformat(),
        }


def max_drawdown_amount(percent_risk: float, balance: float) -> float:
    """Absolute floating loss tolerated per position."""
    return (percent_risk / 100) * balance


class DrawdownMonitor:
    """
    Debounced per-position drawdown protection.

    Usage:
        monitor = DrawdownMonitor(DrawdownConfig(percent_risk=10, tick_threshold=3))
        monitor.on_position_closed(lambda event: notify(event))

        # Every tick
        closures = monitor.evaluate(broker)
    """

    def __init__(self, config: Optional[DrawdownConfig] = None):
        """
        Initialize drawdown monitor.

        Args:
            config: Drawdown configuration (uses defaults if None)
        """
        self.config = config or DrawdownConfig()
        self._tick_counter: Dict[str, int] = {}
        self._callbacks: List[Callable[[DrawdownClosure], None]] = []

    @property
    def counters(self) -> Dict[str, int]:
        """Copy of the consecutive breach counts by position id."""
        return dict(self._tick_counter)

    def on_position_closed(self, callback: Callable[[DrawdownClosure], None]) -> None:
        """
        Register callback for forced closures.

        Args:
            callback: Function to call with each DrawdownClosure
        """
        self._callbacks.append(callback)
        logger.debug(f"Drawdown closure callback registered: {callback}")

    def evaluate(self, broker: Broker, now: Optional[datetime] = None) -> List[DrawdownClosure]:
        """
        Run one tick of drawdown evaluation over all open positions.

        Args:
            broker: Broker to read positions/balance from and close through
            now: Tick time stamped on closure events

        Returns:
            Closure events emitted this tick (failed closes included)
        """
        positions = snapshot(broker.list_open_positions, "open positions")

        try:
            balance = broker.account_balance()
        except Exception as e:
            logger.error(f"Could not read account balance, skipping drawdown check: {e}")
            return []

        threshold = max_drawdown_amount(self.config.percent_risk, balance)
        closures = []

        for position in positions:
            position_id = position.position_id
            loss = position.gross_profit

            if loss < 0 and abs(loss) >= threshold:
                count = self._tick_counter.get(position_id, 0) + 1
                self._tick_counter[position_id] = count

                if count >= self.config.tick_threshold:
                    closures.append(self._close(broker, position, loss, threshold, count, now))
                else:
                    logger.debug(
                        f"Position {position_id} loss {loss:.2f} beyond {threshold:.2f} "
                        f"({count}/{self.config.tick_threshold} ticks)"
                    )
            elif position_id in self._tick_counter:
                del self._tick_counter[position_id]
                logger.debug(f"Position {position_id} back within drawdown limit, counter reset")

        # Positions closed elsewhere lose their count
        open_ids = {p.position_id for p in positions}
        for position_id in list(self._tick_counter):
            if position_id not in open_ids:
                del self._tick_counter[position_id]

        return closures

    def _close(self, broker, position, loss, threshold, count, now) -> DrawdownClosure:
        """Close a position that breached for tick_threshold ticks."""
        outcome = call_broker(
            BrokerAction.CLOSE_POSITION,
            position.position_id,
            broker.close_position,
            position.position_id,
        )
        # No retry bookkeeping: a failed close starts counting again from 1
        self._tick_counter.pop(position.position_id, None)

        event = DrawdownClosure(
            position_id=position.position_id,
            symbol=position.symbol,
            loss=loss,
            max_drawdown_amount=threshold,
            ticks=count,
            outcome=outcome,
            timestamp=now or get_now(),
        )

        if outcome.success:
            guard_log.risk_event(
                "DRAWDOWN_CLOSE",
                f"closed {position.position_id} ({position.symbol}) after {count} ticks, "
                f"loss {loss:.2f} >= {threshold:.2f}",
                position_id=position.position_id,
            )
        else:
            guard_log.risk_event(
                "DRAWDOWN_CLOSE_FAILED",
                f"could not close {position.position_id}: {outcome.error}",
                position_id=position.position_id,
            )

        for callback in self._callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Drawdown closure callback error: {e}")

        return event

    def reset(self) -> None:
        """Clear all breach counters."""
        self._tick_counter.clear()
