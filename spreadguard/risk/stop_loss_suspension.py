"""
Stop-Loss Suspension for the spread window.

On window entry every protective stop is converted to a pip distance from
entry, recorded, and removed from the live position. On window exit the
exact distance is re-applied to each position that is still open.

Pip distances (not absolute prices) are stored so the stop stays valid
even if the broker re-books the entry price while the stop is off.

Sign convention:
- BUY:  (entry - stop) / pip_size
- SELL: (stop - entry) / pip_size
A positive distance means the stop sits on the losing side.
"""

from dataclasses import dataclass
from typing import Dict, List
import logging

from spreadguard.lib.logging_utils import GuardLogger
from spreadguard.trading.broker import (
    ActionOutcome,
    Broker,
    BrokerAction,
    Position,
    call_broker,
    snapshot,
)

logger = logging.getLogger(__name__)
guard_log = GuardLogger(__name__)


@dataclass
class SuspendedStopLoss:
    """Stop-loss removed for the window, kept as a distance from entry."""
    position_id: str
    stop_loss_pips: float


def stop_loss_distance_pips(position: Position, pip_size: float) -> float:
    """
    Convert a position's stop-loss price to a signed pip distance.

    Args:
        position: Position with a stop-loss attached
        pip_size: Pip size of the position's symbol

    Returns:
        Distance from entry in pips (positive on the losing side)

    Raises:
        ValueError: If the position has no stop-loss or pip_size is not positive
    """
    if position.stop_loss is None:
        raise ValueError(f"Position {position.position_id} has no stop loss")
    if pip_size <= 0:
        raise ValueError(f"Invalid pip size {pip_size} for {position.symbol}")

    if position.is_long:
        return (position.entry_price - position.stop_loss) / pip_size
    return (position.stop_loss - position.entry_price) / pip_size


class StopLossSuspension:
    """
    Removes and later re-applies protective stops.

    Records are keyed by position id. The controller guarantees suspend()
    runs once per window entry and restore() once per exit.
    """

    def __init__(self):
        self._records: Dict[str, SuspendedStopLoss] = {}

    @property
    def records(self) -> List[SuspendedStopLoss]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def suspend(self, broker: Broker) -> List[ActionOutcome]:
        """
        Record and remove the stop-loss of every open position that has one.

        Args:
            broker: Broker to read positions from and modify stops through

        Returns:
            One outcome per stop removal attempted
        """
        outcomes = []

        for position in snapshot(broker.list_open_positions, "open positions"):
            if not position.has_stop_loss:
                continue

            try:
                pips = stop_loss_distance_pips(position, broker.pip_size(position.symbol))
            except Exception as e:
                # Without a distance the stop could not be restored; leave it on
                logger.error(f"Keeping stop loss on {position.position_id}: {e}")
                continue

            self._records[position.position_id] = SuspendedStopLoss(
                position_id=position.position_id,
                stop_loss_pips=pips,
            )
            logger.info(f"Stored stop loss pips for position {position.position_id}: {pips:.1f}")

            outcome = call_broker(
                BrokerAction.REMOVE_STOP_LOSS,
                position.position_id,
                broker.modify_stop_loss,
                position.position_id,
                None,
            )
            if outcome.success:
                guard_log.stop_loss_event("REMOVED", position.position_id, pips)
            outcomes.append(outcome)

        return outcomes

    def restore(self, broker: Broker) -> List[ActionOutcome]:
        """
        Re-apply each recorded distance to its position, if still open.

        Positions closed during the window are skipped silently.

        Args:
            broker: Broker to look positions up in and modify stops through

        Returns:
            One outcome per stop re-application attempted
        """
        outcomes = []
        open_ids = {
            p.position_id for p in snapshot(broker.list_open_positions, "open positions")
        }

        for record in self._records.values():
            if record.position_id not in open_ids:
                logger.debug(
                    f"Position {record.position_id} closed during window, "
                    f"dropping stop loss record"
                )
                continue

            outcome = call_broker(
                BrokerAction.REAPPLY_STOP_LOSS,
                record.position_id,
                broker.modify_stop_loss,
                record.position_id,
                record.stop_loss_pips,
            )
            if outcome.success:
                guard_log.stop_loss_event("REAPPLIED", record.position_id, record.stop_loss_pips)
            outcomes.append(outcome)

        return outcomes

    def clear(self) -> None:
        """Drop all records."""
        self._records.clear()
