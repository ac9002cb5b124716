"""
API Package - Exports all API routers
"""

from taskmanager.api import auth, tasks, admin

__all__ = ["auth", "tasks", "admin"]
