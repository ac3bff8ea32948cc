"""
Entry point scripts for the spread guard.

Scripts:
- run_guard.py: Validate configuration and replay tick scenarios
"""
