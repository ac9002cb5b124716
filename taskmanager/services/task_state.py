"""
Task State Machine - Validates and applies changes to an in-memory task

Operations mutate the given task and return it; persisting is the caller's job.
Every operation validates its whole input before touching the task, so a
failure never leaves a partial change behind.
"""

from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence
import logging

from taskmanager.core.exceptions import (
    DueDateInPast,
    EmptyComment,
    InvalidStatus,
    ValidationError,
)
from taskmanager.models.task import Subtask, Task, TaskComment, TaskPriority, TaskStatus
from taskmanager.utils.timestamps import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

TITLE_MAX = 100
DESCRIPTION_MAX = 500
SUBTASK_TITLE_MAX = 100
COMMENT_TEXT_MAX = 500


def _field(item: Any, name: str, default: Any = None) -> Any:
    """Read a field from a mapping or an attribute-style object"""
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _bounded_text(value: Any, field: str, maximum: int) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text or len(text) > maximum:
        raise ValidationError(f"{field} must be between 1 and {maximum} characters")
    return text


class TaskStateMachine:
    """
    Status, due date, subtask, comment and archive transitions.

    Status transitions are unconstrained: any status may follow any other.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def now(self) -> datetime:
        return to_naive_utc(self.clock())

    def create_task(
        self,
        creator_id: Any,
        title: str,
        description: str,
        due_date: datetime,
        priority: TaskPriority = TaskPriority.MEDIUM,
        assigned_to_id: Any = None,
        tags: Optional[List[str]] = None,
        subtasks: Optional[Sequence[Any]] = None,
    ) -> Task:
        """Build a new pending task owned by creator_id"""
        task = Task(
            title=title,
            description=description,
            priority=priority,
            status=TaskStatus.PENDING,
            created_by_id=creator_id,
            assigned_to_id=assigned_to_id,
            tags=list(tags or []),
            is_archived=False,
        )
        self.set_due_date(task, due_date)
        self.set_subtasks(task, subtasks or [])
        return task

    def set_status(self, task: Task, new_status: Any) -> Task:
        """Set status to one of the four known values"""
        try:
            status = TaskStatus(new_status)
        except ValueError:
            logger.warning(f"⚠️  Rejected status {new_status!r} for task {task.id}")
            raise InvalidStatus()

        task.status = status
        return task

    def set_priority(self, task: Task, new_priority: Any) -> Task:
        try:
            priority = TaskPriority(new_priority)
        except ValueError:
            logger.warning(f"⚠️  Rejected priority {new_priority!r} for task {task.id}")
            raise ValidationError("Priority must be low, medium, high, or urgent")

        task.priority = priority
        return task

    def set_details(self, task: Task, title: Optional[str] = None, description: Optional[str] = None) -> Task:
        """
        Replace title and/or description (None leaves a field as is).
        Both are trimmed; title must be 1-100 characters, description 1-500.
        """
        if title is not None:
            title = _bounded_text(title, "Title", TITLE_MAX)
        if description is not None:
            description = _bounded_text(description, "Description", DESCRIPTION_MAX)

        if title is not None:
            task.title = title
        if description is not None:
            task.description = description
        return task

    def set_due_date(self, task: Task, new_due_date: datetime) -> Task:
        """
        Set the due date; it must not be earlier than now (full timestamp comparison).
        Only checked when the due date is explicitly set.
        """
        if new_due_date is None:
            raise ValidationError("Please provide a valid due date")

        due_date = to_naive_utc(new_due_date)
        if due_date < self.now():
            raise DueDateInPast()

        task.due_date = due_date
        return task

    def set_subtasks(self, task: Task, subtasks: Iterable[Any]) -> Task:
        """
        Replace the subtask list.

        completed_at is stamped when a subtask becomes completed, cleared when it
        becomes open, and kept when the completed flag is unchanged. The previous
        state of each subtask is found by position (same title) or else by title.
        """
        normalized = []
        for item in subtasks:
            title = _field(item, "title")
            title = title.strip() if isinstance(title, str) else ""
            if not title or len(title) > SUBTASK_TITLE_MAX:
                raise ValidationError(f"Each subtask must have a title (1-{SUBTASK_TITLE_MAX} chars)")
            completed = _field(item, "completed")
            normalized.append((title, bool(completed) if completed is not None else False))

        previous = list(task.subtasks or [])
        unmatched = list(previous)
        now = self.now()

        replacement = []
        for position, (title, completed) in enumerate(normalized):
            prior = self._match_previous(previous, unmatched, position, title)
            if prior is not None:
                unmatched.remove(prior)

            if not completed:
                completed_at = None
            elif prior is not None and prior.completed:
                completed_at = prior.completed_at  # Unchanged flag keeps its timestamp
            else:
                completed_at = now

            replacement.append(Subtask(
                position=position,
                title=title,
                completed=completed,
                completed_at=completed_at,
            ))

        task.subtasks = replacement
        return task

    @staticmethod
    def _match_previous(previous, unmatched, position, title):
        if position < len(previous):
            candidate = previous[position]
            if candidate.title == title and candidate in unmatched:
                return candidate
        for candidate in unmatched:
            if candidate.title == title:
                return candidate
        return None

    def add_comment(self, task: Task, author_id: Any, text: Optional[str]) -> Task:
        """Append a comment; text is trimmed and must be 1-500 characters"""
        text = text.strip() if isinstance(text, str) else ""
        if not text or len(text) > COMMENT_TEXT_MAX:
            raise EmptyComment()

        comment = TaskComment(
            position=len(task.comments),
            user_id=author_id,
            text=text,
            created_at=self.now(),
        )
        task.comments.append(comment)
        task.updated_at = comment.created_at
        return task

    def toggle_archive(self, task: Task) -> Task:
        task.is_archived = not task.is_archived
        return task
