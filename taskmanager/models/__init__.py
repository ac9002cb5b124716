"""
Models Package - Exports all database models for easy importing
"""

# Import all models to register them with SQLAlchemy Base
from taskmanager.models.user import User, UserRole
from taskmanager.models.task import Task, TaskStatus, TaskPriority, Subtask, TaskComment

__all__ = [
    "User",
    "UserRole",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "Subtask",
    "TaskComment",
]
