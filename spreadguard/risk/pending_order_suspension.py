"""
Pending Order Suspension for the spread window.

On window entry every pending limit/stop order is snapshotted and cancelled
so it cannot trigger on a spread spike. On window exit an equivalent new
order (same direction, symbol, volume and price) is placed for each record.

The restored order gets a new broker id. Stop-loss pips stored with the
record are informational only and are not re-attached to the new order.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging

from spreadguard.lib.logging_utils import GuardLogger
from spreadguard.trading.broker import (
    ActionOutcome,
    Broker,
    BrokerAction,
    PendingOrder,
    PendingOrderType,
    TradeType,
    call_broker,
    snapshot,
)

logger = logging.getLogger(__name__)
guard_log = GuardLogger(__name__)


@dataclass
class SuspendedPendingOrder:
    """Snapshot of a pending order cancelled for the window."""
    order_id: str
    order_type: PendingOrderType
    trade_type: TradeType
    symbol: str
    volume: float
    target_price: float
    stop_loss_pips: Optional[float] = None

    @classmethod
    def from_order(cls, order: PendingOrder) -> "SuspendedPendingOrder":
        return cls(
            order_id=order.order_id,
            order_type=order.order_type,
            trade_type=order.trade_type,
            symbol=order.symbol,
            volume=order.volume,
            target_price=order.target_price,
            stop_loss_pips=order.stop_loss_pips,
        )


class PendingOrderSuspension:
    """
    Cancels pending orders for the window and re-submits them afterwards.

    Cancellation and restoration continue past individual failures. A record
    is kept even when its cancel fails, so no retry happens automatically.
    """

    def __init__(self):
        self._records: List[SuspendedPendingOrder] = []

    @property
    def records(self) -> List[SuspendedPendingOrder]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def suspend(self, broker: Broker) -> List[ActionOutcome]:
        """
        Snapshot and cancel every pending order.

        Args:
            broker: Broker to read and cancel orders through

        Returns:
            One outcome per cancellation attempted
        """
        outcomes = []

        for order in snapshot(broker.list_pending_orders, "pending orders"):
            record = SuspendedPendingOrder.from_order(order)
            self._records.append(record)

            outcome = call_broker(
                BrokerAction.CANCEL_ORDER,
                order.order_id,
                broker.cancel_pending_order,
                order.order_id,
            )
            if outcome.success:
                guard_log.order_event(
                    "CANCELLED",
                    order.order_type.name,
                    order.trade_type.name,
                    order.symbol,
                    order.volume,
                    order.target_price,
                    order_id=order.order_id,
                )
            outcomes.append(outcome)

        return outcomes

    def restore(self, broker: Broker) -> List[ActionOutcome]:
        """
        Place a new order for every record.

        Args:
            broker: Broker to place orders through

        Returns:
            One outcome per placement attempted, carrying the new order id
        """
        outcomes = []

        for record in self._records:
            if record.order_type == PendingOrderType.LIMIT:
                action, place = BrokerAction.PLACE_LIMIT_ORDER, broker.place_limit_order
            else:
                action, place = BrokerAction.PLACE_STOP_ORDER, broker.place_stop_order

            outcome = call_broker(
                action,
                record.order_id,
                place,
                record.trade_type,
                record.symbol,
                record.volume,
                record.target_price,
            )
            if outcome.success:
                guard_log.order_event(
                    "RESTORED",
                    record.order_type.name,
                    record.trade_type.name,
                    record.symbol,
                    record.volume,
                    record.target_price,
                    order_id=outcome.new_order_id,
                    original_order_id=record.order_id,
                )
            outcomes.append(outcome)

        return outcomes

    def clear(self) -> None:
        """Drop all records."""
        self._records.clear()
