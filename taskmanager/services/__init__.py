"""
Services Package - Task state transitions and task persistence
"""

from taskmanager.services.task_state import TaskStateMachine
from taskmanager.services.task_repository import TaskRepository

__all__ = ["TaskStateMachine", "TaskRepository"]
