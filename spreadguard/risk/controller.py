"""
Risk Controller for the spread guard.

Runs once per price tick and sequences the two policies:

1. Spread window state machine
   ARMED     + tick inside [start, end)  -> remove stops, cancel pending orders -> SUSPENDED
   SUSPENDED + tick at/after window end  -> restore pending orders, re-apply stops,
                                            clear buffers                       -> ARMED
   Any other combination is a no-op, so each window instance suspends and
   restores exactly once no matter how many ticks land inside it.

2. Drawdown monitor
   Always runs after the state machine, inside or outside the window.

All state (window state, suspension buffers, drawdown counters) lives on
the controller instance and is in-memory only: a restart inside the window
loses the stop distances and order snapshots.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional
import logging

from spreadguard.lib.config import GuardConfig, validate_config
from spreadguard.lib.logging_utils import GuardLogger
from spreadguard.lib.time_utils import get_now, to_zone
from spreadguard.risk.drawdown_monitor import DrawdownClosure, DrawdownMonitor
from spreadguard.risk.pending_order_suspension import PendingOrderSuspension
from spreadguard.risk.spread_window import SpreadWindow, WindowStatus
from spreadguard.risk.stop_loss_suspension import StopLossSuspension
from spreadguard.trading.broker import ActionOutcome, Broker

logger = logging.getLogger(__name__)
guard_log = GuardLogger(__name__)


class GuardState(Enum):
    """Spread window state of the controller."""
    ARMED = "armed"          # Waiting for the next window
    SUSPENDED = "suspended"  # Stops and pending orders pulled


@dataclass
class TickReport:
    """What the controller did on one tick."""
    now: datetime
    state: GuardState
    window: Optional[WindowStatus] = None
    transitioned: bool = False
    suspended: List[ActionOutcome] = field(default_factory=list)
    restored: List[ActionOutcome] = field(default_factory=list)
    closures: List[DrawdownClosure] = field(default_factory=list)

    @property
    def failures(self) -> List[ActionOutcome]:
        """All failed broker calls made this tick."""
        outcomes = self.suspended + self.restored + [c.outcome for c in self.closures]
        return [o for o in outcomes if not o.success]


class RiskController:
    """
    Per-tick orchestrator of window suspension and drawdown protection.

    Usage:
        config = load_config("config/guard.yaml")
        controller = RiskController(broker, config)
        controller.on_start()

        # From the host's price-update handler
        report = controller.on_tick()

        controller.on_stop()
    """

    def __init__(self, broker: Broker, config: Optional[GuardConfig] = None):
        """
        Initialize risk controller.

        Args:
            broker: Broker capabilities used for all reads and mutations
            config: Guard configuration (uses defaults if None)

        Raises:
            ConfigValidationError: If the configuration is invalid
        """
        self.config = config or GuardConfig()
        for warning in validate_config(self.config):
            logger.warning(f"Config: {warning}")

        self.broker = broker
        self.window = SpreadWindow(self.config.window)
        self.stop_losses = StopLossSuspension()
        self.pending_orders = PendingOrderSuspension()
        self.drawdown = DrawdownMonitor(self.config.drawdown)

        self._state = GuardState.ARMED
        # End of the window instance being sat out while SUSPENDED
        self._suspended_until: Optional[datetime] = None

        logger.info(
            f"RiskController initialized: window="
            f"{self.window.start_time.strftime('%H:%M')}-{self.window.end_time.strftime('%H:%M')} "
            f"{self.config.window.timezone}, percent_risk={self.config.drawdown.percent_risk}%, "
            f"tick_threshold={self.config.drawdown.tick_threshold}"
        )

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def suspended_until(self) -> Optional[datetime]:
        return self._suspended_until

    def _current_time(self) -> datetime:
        """Broker clock, or local time in the window timezone if it is unavailable."""
        try:
            return self.broker.current_time()
        except Exception as e:
            logger.error(f"Broker clock unavailable, using local time: {e}")
            return get_now(self.window.tz)

    def on_start(self) -> None:
        """Log startup details."""
        try:
            balance = f"{self.broker.account_balance():.2f}"
        except Exception as e:
            logger.error(f"Could not read account balance at startup: {e}")
            balance = "unavailable"

        guard_log.info(
            f"Guard started at {self._current_time().isoformat()}, account balance {balance}"
        )

    def on_tick(self, now: Optional[datetime] = None) -> TickReport:
        """
        Process one price tick.

        Args:
            now: Tick time (defaults to the broker clock)

        Returns:
            TickReport describing transitions, broker outcomes and closures
        """
        if now is None:
            now = self._current_time()

        status = self.window.get_status(now)
        report = TickReport(now=status.now, state=self._state, window=status)

        if self._state == GuardState.ARMED and status.in_window:
            report.suspended = self._suspend(status)
            report.transitioned = True
        elif self._state == GuardState.SUSPENDED and status.now >= self._suspended_until:
            report.restored = self._restore(status.now)
            report.transitioned = True

        report.closures = self.drawdown.evaluate(self.broker, status.now)
        report.state = self._state

        return report

    def _suspend(self, status: WindowStatus) -> List[ActionOutcome]:
        """Pull stops and pending orders for the window."""
        guard_log.window_event(
            "SUSPEND", status.now, window_end=status.window_end.isoformat()
        )

        outcomes = self.stop_losses.suspend(self.broker)
        outcomes += self.pending_orders.suspend(self.broker)

        self._state = GuardState.SUSPENDED
        self._suspended_until = status.window_end

        logger.info(
            f"Window suspended until {status.window_end.isoformat()}: "
            f"{len(self.stop_losses)} stop losses, {len(self.pending_orders)} pending orders stored"
        )
        return outcomes

    def _restore(self, now: datetime) -> List[ActionOutcome]:
        """Restore pending orders, then stops, then clear both buffers."""
        guard_log.window_event("RESTORE", now)

        outcomes = self.pending_orders.restore(self.broker)
        outcomes += self.stop_losses.restore(self.broker)

        self.pending_orders.clear()
        self.stop_losses.clear()
        self._state = GuardState.ARMED
        self._suspended_until = None

        failed = sum(1 for o in outcomes if not o.success)
        if failed:
            logger.warning(f"Window restored with {failed} failed broker call(s)")
        else:
            logger.info(f"Window restored: {len(outcomes)} broker call(s) succeeded")
        return outcomes

    def restore_now(self) -> List[ActionOutcome]:
        """
        Restore immediately, outside the tick loop.

        Used to shut down cleanly while SUSPENDED. No-op when ARMED.
        """
        if self._state != GuardState.SUSPENDED:
            return []
        return self._restore(to_zone(self._current_time(), self.window.tz))

    def on_stop(self, restore_pending: bool = False) -> List[ActionOutcome]:
        """
        Log shutdown and optionally restore a suspended window.

        Args:
            restore_pending: Restore stops and orders before stopping if SUSPENDED

        Returns:
            Outcomes of the restoration (empty if none ran)
        """
        outcomes = []
        if self._state == GuardState.SUSPENDED:
            if restore_pending:
                outcomes = self.restore_now()
            else:
                logger.warning(
                    f"Stopping while suspended: {len(self.stop_losses)} stop losses and "
                    f"{len(self.pending_orders)} pending orders will not be restored"
                )

        guard_log.info(f"Guard stopped at {self._current_time().isoformat()}")
        return outcomes
