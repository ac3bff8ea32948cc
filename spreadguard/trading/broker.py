"""
Broker capability interface for the spread guard.

The guard never talks to a trading platform directly. Everything it needs
(positions, pending orders, order mutation, balance, clock, pip size) is
reached through the narrow Broker interface defined here, so the same
controller runs against a live adapter, the paper broker or a test double.

Also defines:
- Position / PendingOrder snapshots returned by the broker
- ActionOutcome, the per-item result of every mutating call
- call_broker / snapshot helpers that turn broker failures into logged
  outcomes so a tick always completes
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional
import logging

from spreadguard.lib.time_utils import get_now

logger = logging.getLogger(__name__)


class TradeType(Enum):
    """Trade direction."""
    BUY = "buy"
    SELL = "sell"


class PendingOrderType(Enum):
    """Kind of pending (not yet triggered) order."""
    LIMIT = "limit"
    STOP = "stop"


class BrokerAction(Enum):
    """Mutating broker calls issued by the guard."""
    REMOVE_STOP_LOSS = "remove_stop_loss"
    REAPPLY_STOP_LOSS = "reapply_stop_loss"
    CANCEL_ORDER = "cancel_order"
    PLACE_LIMIT_ORDER = "place_limit_order"
    PLACE_STOP_ORDER = "place_stop_order"
    CLOSE_POSITION = "close_position"


# Actions whose broker call returns the new order id instead of a flag
_ORDER_PLACEMENT_ACTIONS = (BrokerAction.PLACE_LIMIT_ORDER, BrokerAction.PLACE_STOP_ORDER)


@dataclass
class Position:
    """
    Snapshot of an open position.

    Attributes:
        position_id: Broker identifier, stable for the life of the position
        symbol: Instrument symbol (e.g., "EURUSD")
        trade_type: BUY (long) or SELL (short)
        entry_price: Average entry price
        stop_loss: Absolute stop-loss price, None when no stop is attached
        gross_profit: Floating profit/loss in account currency (negative = losing)
        volume: Size in base units
    """
    position_id: str
    symbol: str
    trade_type: TradeType
    entry_price: float
    stop_loss: Optional[float] = None
    gross_profit: float = 0.0
    volume: float = 0.0

    @property
    def is_long(self) -> bool:
        return self.trade_type == TradeType.BUY

    @property
    def has_stop_loss(self) -> bool:
        return self.stop_loss is not None


@dataclass
class PendingOrder:
    """Snapshot of a pending order that has not triggered yet."""
    order_id: str
    order_type: PendingOrderType
    trade_type: TradeType
    symbol: str
    volume: float
    target_price: float
    stop_loss_pips: Optional[float] = None


@dataclass
class ActionOutcome:
    """
    Result of one mutating broker call.

    Batch operations return one outcome per item so callers can see
    partial failures instead of relying on logs.
    """
    action: BrokerAction
    target_id: str
    success: bool
    new_order_id: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=get_now)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/reporting."""
        return {
            "action": self.action.value,
            "target_id": self.target_id,
            "success": self.success,
            "new_order_id": self.new_order_id,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


class Broker(ABC):
    """
    Capabilities the guard needs from a trading platform.

    Mutating calls report failure through their return value; an
    implementation may also raise, call_broker treats both the same way.
    """

    @abstractmethod
    def list_open_positions(self) -> List[Position]:
        """Get all open positions."""

    @abstractmethod
    def list_pending_orders(self) -> List[PendingOrder]:
        """Get all pending orders."""

    @abstractmethod
    def modify_stop_loss(self, position_id: str, pips: Optional[float]) -> bool:
        """
        Set a position's stop-loss as a distance from entry in pips.

        Args:
            position_id: Position to modify
            pips: Distance from entry on the losing side, None removes the stop

        Returns:
            True if the broker accepted the change
        """

    @abstractmethod
    def close_position(self, position_id: str) -> bool:
        """Close a position at market. Returns True on success."""

    @abstractmethod
    def cancel_pending_order(self, order_id: str) -> bool:
        """Cancel a pending order. Returns True on success."""

    @abstractmethod
    def place_limit_order(
        self,
        trade_type: TradeType,
        symbol: str,
        volume: float,
        price: float,
    ) -> Optional[str]:
        """Place a limit order. Returns the new order id, None on failure."""

    @abstractmethod
    def place_stop_order(
        self,
        trade_type: TradeType,
        symbol: str,
        volume: float,
        price: float,
    ) -> Optional[str]:
        """Place a stop order. Returns the new order id, None on failure."""

    @abstractmethod
    def current_time(self) -> datetime:
        """Get the broker/server time."""

    @abstractmethod
    def account_balance(self) -> float:
        """Get the current account balance."""

    @abstractmethod
    def pip_size(self, symbol: str) -> float:
        """Get the pip size of a symbol."""


# =============================================================================
# Safe call helpers
# =============================================================================

def call_broker(
    action: BrokerAction,
    target_id: str,
    func: Callable[..., Any],
    *args: Any,
) -> ActionOutcome:
    """
    Invoke a mutating broker call and capture its outcome.

    Failures (falsy return or exception) are logged and returned as an
    unsuccessful outcome; they never propagate.

    Args:
        action: Which call is being made
        target_id: Position or order the call refers to
        func: Broker method to invoke
        *args: Arguments for the broker method

    Returns:
        ActionOutcome for this call
    """
    try:
        result = func(*args)
    except Exception as e:
        logger.error(f"{action.value} failed for {target_id}: {e}")
        return ActionOutcome(action=action, target_id=target_id, success=False, error=str(e))

    if action in _ORDER_PLACEMENT_ACTIONS:
        if result is None:
            logger.error(f"{action.value} rejected for {target_id}")
            return ActionOutcome(
                action=action, target_id=target_id, success=False, error="order rejected"
            )
        return ActionOutcome(
            action=action, target_id=target_id, success=True, new_order_id=str(result)
        )

    if not result:
        logger.error(f"{action.value} rejected for {target_id}")
        return ActionOutcome(
            action=action, target_id=target_id, success=False, error="rejected by broker"
        )

    return ActionOutcome(action=action, target_id=target_id, success=True)


def snapshot(func: Callable[[], Any], what: str) -> list:
    """
    Take a list snapshot of a broker collection.

    A failing listing call is logged and treated as empty for this tick.

    Args:
        func: Broker listing method
        what: Collection name for the log message

    Returns:
        List copy of the collection
    """
    try:
        return list(func())
    except Exception as e:
        logger.error(f"Could not list {what}: {e}")
        return []
