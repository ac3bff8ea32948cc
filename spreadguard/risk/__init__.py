"""
Risk Management Module for the spread guard.

This module provides the two protections the guard enforces on every tick:
- Spread window suspension: protective stops and pending entries are pulled
  for the daily rollover window and restored afterwards
- Drawdown protection: positions whose floating loss stays beyond a percent of
  balance for N consecutive ticks are closed

Drawdown protection is never suspended, the window only affects stops and
pending orders.
"""

from .spread_window import SpreadWindow, WindowPhase, WindowStatus
from .stop_loss_suspension import (
    StopLossSuspension,
    SuspendedStopLoss,
    stop_loss_distance_pips,
)
from .pending_order_suspension import PendingOrderSuspension, SuspendedPendingOrder
from .drawdown_monitor import DrawdownMonitor, DrawdownClosure, max_drawdown_amount
from .controller import RiskController, GuardState, TickReport

__all__ = [
    # Window evaluation
    'SpreadWindow',
    'WindowPhase',
    'WindowStatus',
    # Stop-loss suspension
    'StopLossSuspension',
    'SuspendedStopLoss',
    'stop_loss_distance_pips',
    # Pending order suspension
    'PendingOrderSuspension',
    'SuspendedPendingOrder',
    # Drawdown protection
    'DrawdownMonitor',
    'DrawdownClosure',
    'max_drawdown_amount',
    # Controller
    'RiskController',
    'GuardState',
    'TickReport',
]
