"""
Spread Window evaluator.

Brokers widen spreads sharply around the daily rollover. During that window
a protective stop can be hit by spread alone, so the guard pulls stops and
pending entries for its duration.

This module handles:
- Building today's window boundaries from the configured time-of-day
- Phase detection (before / in / after the window)
- Windows that cross midnight (end taken on the following day)
- Timezone handling for naive and aware tick times
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Optional

from spreadguard.lib.config import WindowConfig
from spreadguard.lib.time_utils import combine, get_zone, to_zone


class WindowPhase(Enum):
    """Position of a tick relative to the daily spread window."""
    BEFORE_WINDOW = "before_window"
    IN_WINDOW = "in_window"
    AFTER_WINDOW = "after_window"


@dataclass
class WindowStatus:
    """Window evaluation for one tick."""
    phase: WindowPhase
    now: datetime
    window_start: datetime
    window_end: datetime

    @property
    def in_window(self) -> bool:
        return self.phase == WindowPhase.IN_WINDOW

    @property
    def minutes_to_end(self) -> int:
        """Minutes until the window closes (0 once it has closed)."""
        return max(0, int((self.window_end - self.now).total_seconds() / 60))


class SpreadWindow:
    """
    Daily spread window.

    Usage:
        window = SpreadWindow(WindowConfig(start_hour=21, end_hour=22))

        status = window.get_status(tick_time)
        if status.in_window:
            # Stops and pending orders should be pulled
            pass
    """

    def __init__(self, config: Optional[WindowConfig] = None):
        """
        Initialize spread window.

        Args:
            config: Window configuration (uses defaults if None)
        """
        self.config = config or WindowConfig()
        self.tz = get_zone(self.config.timezone)

    @property
    def start_time(self) -> time:
        return self.config.start_time

    @property
    def end_time(self) -> time:
        return self.config.end_time

    def get_status(self, now: datetime) -> WindowStatus:
        """
        Evaluate the window for a tick.

        Args:
            now: Tick time (naive times are taken in the window timezone)

        Returns:
            WindowStatus with phase and the boundaries of the relevant window
        """
        now = to_zone(now, self.tz)
        today = now.date()

        if not self.config.crosses_midnight:
            start = combine(today, self.start_time, self.tz)
            end = combine(today, self.end_time, self.tz)
            if start <= now < end:
                phase = WindowPhase.IN_WINDOW
            elif now >= end:
                phase = WindowPhase.AFTER_WINDOW
            else:
                phase = WindowPhase.BEFORE_WINDOW
            return WindowStatus(phase=phase, now=now, window_start=start, window_end=end)

        # Window such as 23:00-01:00: the end belongs to the next calendar day
        current = now.time()
        if current >= self.start_time:
            start = combine(today, self.start_time, self.tz)
            end = combine(today + timedelta(days=1), self.end_time, self.tz)
            phase = WindowPhase.IN_WINDOW
        elif current < self.end_time:
            start = combine(today - timedelta(days=1), self.start_time, self.tz)
            end = combine(today, self.end_time, self.tz)
            phase = WindowPhase.IN_WINDOW
        else:
            # Between this morning's end and tonight's start
            start = combine(today, self.start_time, self.tz)
            end = combine(today, self.end_time, self.tz)
            phase = WindowPhase.AFTER_WINDOW

        return WindowStatus(phase=phase, now=now, window_start=start, window_end=end)

    def is_in_window(self, now: datetime) -> bool:
        """Check whether a tick falls inside the window."""
        return self.get_status(now).in_window
