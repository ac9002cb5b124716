"""
Utilities Package - Helper functions

This package contains:
- timestamps.py: naive-UTC timestamp helpers used for all persisted times
"""

from taskmanager.utils.timestamps import utcnow, to_naive_utc

__all__ = ["utcnow", "to_naive_utc"]
