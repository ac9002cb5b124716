"""
Task Manager Package

Multi-user task tracking API: tasks with subtasks, comments and an archive
flag, plus an admin surface for user management and dashboard statistics.

Usage:
    from taskmanager.models import User, Task
    from taskmanager.core.config import settings
"""

__version__ = "1.0.0"  # Application version
