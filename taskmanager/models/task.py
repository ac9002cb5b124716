"""
Task Model - Work items with subtasks and an append-only comment log
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, JSON, String, Text, Uuid,
)
from sqlalchemy.orm import relationship, validates
import enum
import uuid

from taskmanager.core.exceptions import ValidationError
from taskmanager.database import Base
from taskmanager.utils.timestamps import utcnow


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class TaskStatus(str, enum.Enum):
    """Task status - any status may follow any other"""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, enum.Enum):
    """Task priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Task(Base):
    """
    Task table - owned by its creator, optionally assigned to another user.
    """
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    # Task content
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)

    # Task metadata
    status = Column(
        SQLEnum(TaskStatus, values_callable=_enum_values),
        default=TaskStatus.PENDING, nullable=False, index=True,
    )
    priority = Column(
        SQLEnum(TaskPriority, values_callable=_enum_values),
        default=TaskPriority.MEDIUM, nullable=False,
    )
    due_date = Column(DateTime, nullable=False, index=True)
    tags = Column(JSON, default=list, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False, index=True)

    # Ownership and assignment
    created_by_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    assigned_to_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("User", foreign_keys=[created_by_id], back_populates="tasks_created")
    assignee = relationship("User", foreign_keys=[assigned_to_id], back_populates="tasks_assigned")

    subtasks = relationship(
        "Subtask",
        back_populates="task",
        order_by="Subtask.position",
        cascade="all, delete-orphan",
    )
    comments = relationship(
        "TaskComment",
        back_populates="task",
        order_by="TaskComment.position",
        cascade="all, delete-orphan",
    )

    @validates("created_by_id")
    def validate_creator(self, key, value):
        """The creator is set once and never reassigned"""
        if self.created_by_id is not None and value != self.created_by_id:
            raise ValidationError("Task creator cannot be changed", reason="creator-immutable")
        return value

    def __repr__(self):
        return f"<Task {self.id}: {self.title} ({self.status})>"


class Subtask(Base):
    """Checklist item belonging to a task"""
    __tablename__ = "subtasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    title = Column(String(100), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    task = relationship("Task", back_populates="subtasks")

    def __repr__(self):
        return f"<Subtask {self.title} ({'done' if self.completed else 'open'})>"


class TaskComment(Base):
    """
    Append-only comment on a task.
    user_id is a weak reference: the author may be deleted later, so it is not a foreign key.
    """
    __tablename__ = "task_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    user_id = Column(Uuid, nullable=False, index=True)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    task = relationship("Task", back_populates="comments")

    def __repr__(self):
        return f"<TaskComment by {self.user_id} at {self.created_at}>"
