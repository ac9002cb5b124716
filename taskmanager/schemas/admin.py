"""
Admin Schemas - Dashboard statistics
"""

from pydantic import BaseModel
from typing import List

from taskmanager.schemas.task import TaskResponse


class UserCounts(BaseModel):
    total: int = 0
    admins: int = 0
    regular: int = 0
    active: int = 0


class TaskCounts(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    archived: int = 0


class PriorityCounts(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    urgent: int = 0


class DashboardStats(BaseModel):
    users: UserCounts
    tasks: TaskCounts
    priorities: PriorityCounts


class DashboardResponse(BaseModel):
    """Admin dashboard: counts plus recent and overdue tasks"""
    stats: DashboardStats
    recent_tasks: List[TaskResponse]
    overdue_tasks: List[TaskResponse]
