"""
Schemas Package - Exports all Pydantic schemas
"""

from taskmanager.schemas.user import (
    UserCreate,
    UserLogin,
    UserResponse,
    UserUpdate,
    PasswordChange,
    AdminUserUpdate,
    RoleUpdate,
    TokenResponse,
    UserListResponse,
    UserTaskStats,
    UserDetailResponse,
)
from taskmanager.schemas.task import (
    SubtaskIn,
    TaskCreate,
    TaskUpdate,
    CommentCreate,
    TaskResponse,
    TaskListResponse,
    MessageResponse,
)
from taskmanager.schemas.admin import DashboardResponse

__all__ = [
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "UserUpdate",
    "PasswordChange",
    "AdminUserUpdate",
    "RoleUpdate",
    "TokenResponse",
    "UserListResponse",
    "UserTaskStats",
    "UserDetailResponse",
    "SubtaskIn",
    "TaskCreate",
    "TaskUpdate",
    "CommentCreate",
    "TaskResponse",
    "TaskListResponse",
    "MessageResponse",
    "DashboardResponse",
]
