"""
Task Repository - SQLAlchemy persistence for tasks and the lookups around them
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from taskmanager.models import Task, TaskPriority, TaskStatus, User

logger = logging.getLogger(__name__)


class TaskRepository:
    """Data access for tasks; one instance per request session"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Task).options(
            selectinload(Task.creator),
            selectinload(Task.assignee),
            selectinload(Task.subtasks),
            selectinload(Task.comments),
        )

    def get(self, task_id: UUID) -> Optional[Task]:
        return self._query().filter(Task.id == task_id).first()

    def list_tasks(
        self,
        visible_to: Optional[UUID] = None,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        assigned_to_id: Optional[UUID] = None,
        created_by_id: Optional[UUID] = None,
        search: Optional[str] = None,
        include_archived: bool = False,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Task], int]:
        """
        Filtered, paginated task listing, newest first.

        visible_to restricts the listing to tasks the given user created or is assigned;
        None means no restriction (admin view).
        """
        query = self.db.query(Task)

        if visible_to is not None:
            query = query.filter(or_(Task.created_by_id == visible_to, Task.assigned_to_id == visible_to))
        if status is not None:
            query = query.filter(Task.status == status)
        if priority is not None:
            query = query.filter(Task.priority == priority)
        if assigned_to_id is not None:
            query = query.filter(Task.assigned_to_id == assigned_to_id)
        if created_by_id is not None:
            query = query.filter(Task.created_by_id == created_by_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
        if not include_archived:
            query = query.filter(Task.is_archived.is_(False))

        total = query.count()

        offset = (page - 1) * limit
        tasks = (
            query.options(
                selectinload(Task.creator),
                selectinload(Task.assignee),
                selectinload(Task.subtasks),
                selectinload(Task.comments),
            )
            .order_by(Task.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return tasks, total

    def count_tasks_referencing(self, user_id: UUID) -> int:
        """Tasks that reference the user as creator or assignee"""
        return (
            self.db.query(func.count(Task.id))
            .filter(or_(Task.created_by_id == user_id, Task.assigned_to_id == user_id))
            .scalar()
        ) or 0

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_users_by_ids(self, user_ids: Iterable[UUID]) -> Dict[UUID, User]:
        """Resolve user references best-effort; missing users are simply absent"""
        ids = {user_id for user_id in user_ids if user_id is not None}
        if not ids:
            return {}
        users = self.db.query(User).filter(User.id.in_(ids)).all()
        return {user.id: user for user in users}

    def add(self, task: Task) -> Task:
        self.db.add(task)
        return self.save(task)

    def save(self, task: Task) -> Task:
        """Commit pending changes to the task"""
        try:
            self.db.commit()
            self.db.refresh(task)
            return task
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save task {task.id}: {str(e)}", exc_info=True)
            raise

    def delete(self, task: Task) -> None:
        try:
            self.db.delete(task)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to delete task {task.id}: {str(e)}", exc_info=True)
            raise

    def status_counts(self, assigned_to_id: Optional[UUID] = None) -> Dict[TaskStatus, int]:
        query = self.db.query(Task.status, func.count(Task.id))
        if assigned_to_id is not None:
            query = query.filter(Task.assigned_to_id == assigned_to_id)
        return {status: count for status, count in query.group_by(Task.status).all()}

    def priority_counts(self) -> Dict[TaskPriority, int]:
        rows = self.db.query(Task.priority, func.count(Task.id)).group_by(Task.priority).all()
        return {priority: count for priority, count in rows}

    def archived_count(self) -> int:
        return self.db.query(func.count(Task.id)).filter(Task.is_archived.is_(True)).scalar() or 0

    def recent_tasks(self, limit: int = 5) -> List[Task]:
        return self._query().order_by(Task.created_at.desc()).limit(limit).all()

    def overdue_tasks(self, now: datetime, limit: int = 10) -> List[Task]:
        """Open tasks whose due date has passed, most overdue first"""
        return (
            self._query()
            .filter(Task.due_date < now)
            .filter(Task.status.notin_([TaskStatus.COMPLETED, TaskStatus.CANCELLED]))
            .order_by(Task.due_date.asc())
            .limit(limit)
            .all()
        )
