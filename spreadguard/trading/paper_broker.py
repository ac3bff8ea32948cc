"""
Paper Broker for the spread guard.

In-memory implementation of the Broker interface. Used for:
- Unit and scenario tests
- Replaying recorded tick scenarios from the command line
- Dry runs of a new window/drawdown configuration

Features:
- Positions and pending orders keyed by id, new ids issued sequentially
- Settable clock, balance and per-symbol pip sizes
- Failure injection per method (reject or raise)
- Call journal for assertions
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging

from spreadguard.lib.constants import default_pip_size
from spreadguard.lib.time_utils import get_now
from spreadguard.trading.broker import (
    Broker,
    PendingOrder,
    PendingOrderType,
    Position,
    TradeType,
)

logger = logging.getLogger(__name__)


class PaperBrokerError(Exception):
    """Raised by the paper broker when an injected failure asks it to raise."""
    pass


@dataclass
class BrokerCall:
    """One recorded call into the paper broker."""
    method: str
    args: Tuple[Any, ...]
    success: bool


class PaperBroker(Broker):
    """
    In-memory broker.

    Usage:
        broker = PaperBroker(balance=10_000.0)
        pos = broker.add_position("EURUSD", TradeType.BUY, 1.1000, stop_loss=1.0950)
        broker.set_gross_profit(pos.position_id, -250.0)
        broker.set_time(datetime(2025, 1, 15, 21, 0))

        # Make the next cancel fail
        broker.inject_failure("cancel_pending_order")
    """

    def __init__(
        self,
        balance: float = 10_000.0,
        now: Optional[datetime] = None,
        pip_sizes: Optional[Dict[str, float]] = None,
    ):
        """
        Initialize paper broker.

        Args:
            balance: Starting account balance
            now: Initial clock value (defaults to current UTC time)
            pip_sizes: Pip size overrides by symbol
        """
        self._balance = balance
        self._now = now or get_now()
        self._pip_sizes = dict(pip_sizes or {})
        self._positions: Dict[str, Position] = {}
        self._orders: Dict[str, PendingOrder] = {}
        self._next_id = 1
        self._failures: Dict[str, List[Tuple[Optional[str], bool]]] = {}
        self.calls: List[BrokerCall] = []

    # -------------------------------------------------------------------------
    # Setup helpers
    # -------------------------------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        # Skip ids already taken by explicitly-named positions/orders
        while True:
            new_id = f"{prefix}{self._next_id}"
            self._next_id += 1
            if new_id not in self._positions and new_id not in self._orders:
                return new_id

    def add_position(
        self,
        symbol: str,
        trade_type: TradeType,
        entry_price: float,
        stop_loss: Optional[float] = None,
        gross_profit: float = 0.0,
        volume: float = 1000.0,
        position_id: Optional[str] = None,
    ) -> Position:
        """
        Open a position directly (no order flow).

        Raises:
            ValueError: If position_id is already in use
        """
        if position_id is not None and position_id in self._positions:
            raise ValueError(f"Position id already in use: {position_id}")

        position = Position(
            position_id=position_id or self._new_id("P"),
            symbol=symbol,
            trade_type=trade_type,
            entry_price=entry_price,
            stop_loss=stop_loss,
            gross_profit=gross_profit,
            volume=volume,
        )
        self._positions[position.position_id] = position
        return replace(position)

    def add_pending_order(
        self,
        order_type: PendingOrderType,
        trade_type: TradeType,
        symbol: str,
        volume: float,
        target_price: float,
        stop_loss_pips: Optional[float] = None,
        order_id: Optional[str] = None,
    ) -> PendingOrder:
        """
        Add a pending order directly.

        Raises:
            ValueError: If order_id is already in use
        """
        if order_id is not None and order_id in self._orders:
            raise ValueError(f"Order id already in use: {order_id}")

        order = PendingOrder(
            order_id=order_id or self._new_id("O"),
            order_type=order_type,
            trade_type=trade_type,
            symbol=symbol,
            volume=volume,
            target_price=target_price,
            stop_loss_pips=stop_loss_pips,
        )
        self._orders[order.order_id] = order
        return replace(order)

    def set_gross_profit(self, position_id: str, gross_profit: float) -> None:
        """Update a position's floating P&L."""
        self._positions[position_id].gross_profit = gross_profit

    def remove_position(self, position_id: str) -> None:
        """Drop a position without realising P&L (closed outside the guard)."""
        self._positions.pop(position_id, None)

    def set_time(self, now: datetime) -> None:
        self._now = now

    def set_balance(self, balance: float) -> None:
        self._balance = balance

    def set_pip_size(self, symbol: str, pip_size: float) -> None:
        self._pip_sizes[symbol] = pip_size

    def inject_failure(
        self,
        method: str,
        target_id: Optional[str] = None,
        raise_error: bool = False,
    ) -> None:
        """
        Make the next matching call fail once.

        Args:
            method: Broker method name (e.g., "cancel_pending_order")
            target_id: Only fail for this position/order id, or symbol for
                order placement (any target if None)
            raise_error: Raise PaperBrokerError instead of returning failure
        """
        self._failures.setdefault(method, []).append((target_id, raise_error))

    def get_position(self, position_id: str) -> Optional[Position]:
        position = self._positions.get(position_id)
        return replace(position) if position else None

    def get_pending_order(self, order_id: str) -> Optional[PendingOrder]:
        order = self._orders.get(order_id)
        return replace(order) if order else None

    def calls_to(self, method: str) -> List[BrokerCall]:
        """Get journal entries for one method."""
        return [c for c in self.calls if c.method == method]

    def _should_fail(self, method: str, target_id: Optional[str]) -> bool:
        pending = self._failures.get(method)
        if not pending:
            return False
        for i, (wanted_id, raise_error) in enumerate(pending):
            if wanted_id is None or wanted_id == target_id:
                del pending[i]
                if raise_error:
                    raise PaperBrokerError(f"{method} failed for {target_id}")
                return True
        return False

    def _record(self, method: str, args: Tuple[Any, ...], success: bool) -> None:
        self.calls.append(BrokerCall(method=method, args=args, success=success))

    # -------------------------------------------------------------------------
    # Broker interface
    # -------------------------------------------------------------------------

    def list_open_positions(self) -> List[Position]:
        return [replace(p) for p in self._positions.values()]

    def list_pending_orders(self) -> List[PendingOrder]:
        return [replace(o) for o in self._orders.values()]

    def modify_stop_loss(self, position_id: str, pips: Optional[float]) -> bool:
        args = (position_id, pips)
        position = self._positions.get(position_id)
        if position is None or self._should_fail("modify_stop_loss", position_id):
            self._record("modify_stop_loss", args, False)
            return False

        if pips is None:
            position.stop_loss = None
        else:
            offset = pips * self.pip_size(position.symbol)
            if position.is_long:
                position.stop_loss = position.entry_price - offset
            else:
                position.stop_loss = position.entry_price + offset

        self._record("modify_stop_loss", args, True)
        return True

    def close_position(self, position_id: str) -> bool:
        args = (position_id,)
        if position_id not in self._positions or self._should_fail("close_position", position_id):
            self._record("close_position", args, False)
            return False

        position = self._positions.pop(position_id)
        self._balance += position.gross_profit
        logger.debug(f"Paper close {position_id}: realised {position.gross_profit:.2f}")
        self._record("close_position", args, True)
        return True

    def cancel_pending_order(self, order_id: str) -> bool:
        args = (order_id,)
        if order_id not in self._orders or self._should_fail("cancel_pending_order", order_id):
            self._record("cancel_pending_order", args, False)
            return False

        del self._orders[order_id]
        self._record("cancel_pending_order", args, True)
        return True

    def _place(
        self,
        method: str,
        order_type: PendingOrderType,
        trade_type: TradeType,
        symbol: str,
        volume: float,
        price: float,
    ) -> Optional[str]:
        args = (trade_type, symbol, volume, price)
        if self._should_fail(method, symbol):
            self._record(method, args, False)
            return None

        order = self.add_pending_order(order_type, trade_type, symbol, volume, price)
        self._record(method, args, True)
        return order.order_id

    def place_limit_order(
        self,
        trade_type: TradeType,
        symbol: str,
        volume: float,
        price: float,
    ) -> Optional[str]:
        return self._place(
            "place_limit_order", PendingOrderType.LIMIT, trade_type, symbol, volume, price
        )

    def place_stop_order(
        self,
        trade_type: TradeType,
        symbol: str,
        volume: float,
        price: float,
    ) -> Optional[str]:
        return self._place(
            "place_stop_order", PendingOrderType.STOP, trade_type, symbol, volume, price
        )

    def current_time(self) -> datetime:
        return self._now

    def account_balance(self) -> float:
        return self._balance

    def pip_size(self, symbol: str) -> float:
        return self._pip_sizes.get(symbol, default_pip_size(symbol))
