"""
Spread risk guard.

Pulls protective stops and pending orders for the daily spread window and
closes positions whose floating loss stays beyond a percent of balance.
"""

__version__ = "1.0.0"
