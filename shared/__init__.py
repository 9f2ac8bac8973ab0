"""
Shared utilities for replboot components.

- logging_config: opt-in diagnostic logging setup
"""
