"""
Task Schemas - Pydantic models for task operations
"""

from pydantic import BaseModel, ConfigDict, field_validator
from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from taskmanager.models.task import Task, TaskPriority, TaskStatus

# DO NOT import from taskmanager.schemas here - causes circular import


def _check_length(v: str, field: str, maximum: int) -> str:
    if v is None or not v.strip() or len(v.strip()) > maximum:
        raise ValueError(f'{field} must be between 1 and {maximum} characters')
    return v.strip()


def _check_tags(v: List[str]) -> List[str]:
    return [tag.strip() for tag in v if tag and tag.strip()]


class SubtaskIn(BaseModel):
    """Subtask as sent by the client; completed defaults to false"""
    title: str
    completed: Optional[bool] = None


class TaskCreate(BaseModel):
    """Schema for creating new task"""
    title: str
    description: str
    due_date: datetime
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to_id: Optional[UUID] = None
    tags: List[str] = []
    subtasks: List[SubtaskIn] = []

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return _check_length(v, 'Title', 100)

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        return _check_length(v, 'Description', 500)

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return _check_tags(v)


class TaskUpdate(BaseModel):
    """
    Schema for updating existing task - all fields optional.
    status, priority, title and description stay unchecked here: the state machine
    validates them once the task exists and the caller may modify it.
    Sending assigned_to_id as null unassigns the task.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[datetime] = None
    assigned_to_id: Optional[UUID] = None
    tags: Optional[List[str]] = None
    subtasks: Optional[List[SubtaskIn]] = None

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return _check_tags(v) if v is not None else v


class CommentCreate(BaseModel):
    """Schema for adding a comment; text rules are enforced by the state machine"""
    text: str


class UserSummary(BaseModel):
    """Expanded user reference inside task payloads"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str


class SubtaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    completed: bool
    completed_at: Optional[datetime] = None


class CommentResponse(BaseModel):
    """Comment with its author expanded; user is None when the author was deleted"""
    id: UUID
    user_id: UUID
    user: Optional[UserSummary] = None
    text: str
    created_at: datetime


class TaskResponse(BaseModel):
    """Schema for task data in responses"""
    id: UUID
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    tags: List[str]
    is_archived: bool
    created_by_id: UUID
    created_by: Optional[UserSummary] = None
    assigned_to_id: Optional[UUID] = None
    assigned_to: Optional[UserSummary] = None
    subtasks: List[SubtaskResponse]
    comments: List[CommentResponse]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task, authors: Optional[Dict[UUID, object]] = None) -> "TaskResponse":
        """Build the response, resolving comment authors from the given lookup"""
        authors = authors or {}
        comments = []
        for comment in task.comments:
            author = authors.get(comment.user_id)
            comments.append(CommentResponse(
                id=comment.id,
                user_id=comment.user_id,
                user=UserSummary.model_validate(author) if author is not None else None,
                text=comment.text,
                created_at=comment.created_at,
            ))

        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            tags=list(task.tags or []),
            is_archived=task.is_archived,
            created_by_id=task.created_by_id,
            created_by=UserSummary.model_validate(task.creator) if task.creator else None,
            assigned_to_id=task.assigned_to_id,
            assigned_to=UserSummary.model_validate(task.assignee) if task.assignee else None,
            subtasks=[SubtaskResponse.model_validate(subtask) for subtask in task.subtasks],
            comments=comments,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class TaskListResponse(BaseModel):
    """Schema for paginated task list"""
    tasks: List[TaskResponse]
    count: int  # Tasks on this page
    total: int  # Tasks matching the filters
    page: int
    pages: int


class MessageResponse(BaseModel):
    message: str
