"""
Tasks API - Task CRUD, comments and archiving
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from uuid import UUID
import logging
import math

from taskmanager.core.dependencies import get_current_user, get_state_machine, get_task_repository
from taskmanager.core.exceptions import NotFoundError
from taskmanager.core.policy import (
    can_archive_task,
    can_delete_task,
    can_modify_task,
    can_read_task,
    is_admin,
)
from taskmanager.models import Task, TaskPriority, TaskStatus, User
from taskmanager.schemas import (
    CommentCreate,
    MessageResponse,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskUpdate,
)
from taskmanager.services import TaskRepository, TaskStateMachine

logger = logging.getLogger(__name__)
router = APIRouter()


def task_response(task: Task, repo: TaskRepository) -> TaskResponse:
    """Serialize a task with comment authors resolved (missing authors render as null)"""
    authors = repo.get_users_by_ids(comment.user_id for comment in task.comments)
    return TaskResponse.from_task(task, authors)


def task_list_response(tasks: List[Task], total: int, page: int, limit: int,
                       repo: TaskRepository) -> TaskListResponse:
    return TaskListResponse(
        tasks=[task_response(task, repo) for task in tasks],
        count=len(tasks),
        total=total,
        page=page,
        pages=math.ceil(total / limit) if total else 0,
    )


def get_task_or_404(task_id: UUID, repo: TaskRepository) -> Task:
    task = repo.get(task_id)
    if not task:
        logger.warning(f"⚠️  Task {task_id} not found")
        raise NotFoundError("Task not found", reason="task-not-found")
    return task


def ensure_assignee_exists(assignee_id: Optional[UUID], repo: TaskRepository) -> None:
    if assignee_id is not None and repo.get_user(assignee_id) is None:
        logger.warning(f"⚠️  Assigned user {assignee_id} not found")
        raise NotFoundError("Assigned user not found", reason="assignee-not-found", status_code=400)


@router.get("", response_model=TaskListResponse)
def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = Query(None),
    assigned_to: Optional[UUID] = Query(None, description="Filter by assignee (admin only)"),
    search: Optional[str] = Query(None, description="Search title and description"),
    include_archived: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
):
    """
    List tasks visible to the current user.

    Regular users see tasks they created or are assigned to.
    Admins see all tasks and may filter by assignee.
    Archived tasks are excluded unless include_archived is set.
    """
    logger.info(f"➡️  List tasks request from: {current_user.email}")

    admin = is_admin(current_user)
    tasks, total = repo.list_tasks(
        visible_to=None if admin else current_user.id,
        status=status_filter,
        priority=priority,
        assigned_to_id=assigned_to if admin else None,
        search=search,
        include_archived=include_archived,
        page=page,
        limit=limit,
    )

    logger.info(f"✅ Returning {len(tasks)} tasks (total: {total})")
    return task_list_response(tasks, total, page, limit, repo)


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
):
    """
    Get a single task with creator, assignee and comment authors expanded.

    Raises:
        404: Task not found
        403: Not admin, creator or assignee
    """
    logger.info(f"➡️  Get task {task_id} request from: {current_user.email}")

    task = get_task_or_404(task_id, repo)
    can_read_task(current_user, task).enforce()

    return task_response(task, repo)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    current_user: User = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
    machine: TaskStateMachine = Depends(get_state_machine),
):
    """
    Create a task owned by the current user.

    Raises:
        400: Validation failed, due date in the past, or assignee not found
    """
    logger.info(f"➡️  Create task request from: {current_user.email}")

    ensure_assignee_exists(task_data.assigned_to_id, repo)

    task = machine.create_task(
        creator_id=current_user.id,
        title=task_data.title,
        description=task_data.description,
        due_date=task_data.due_date,
        priority=task_data.priority,
        assigned_to_id=task_data.assigned_to_id,
        tags=task_data.tags,
        subtasks=task_data.subtasks,
    )
    repo.add(task)

    logger.info(f"✅ Task created: {task.id}")
    return task_response(task, repo)


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: UUID,
    task_data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
    machine: TaskStateMachine = Depends(get_state_machine),
):
    """
    Update task fields. The creator can never be changed.

    Raises:
        404: Task not found
        403: Not admin, creator or assignee
        400: Validation failed, due date in the past, or assignee not found
    """
    logger.info(f"➡️  Update task {task_id} request from: {current_user.email}")

    task = get_task_or_404(task_id, repo)
    can_modify_task(current_user, task).enforce()

    provided = task_data.model_fields_set

    if "assigned_to_id" in provided:
        ensure_assignee_exists(task_data.assigned_to_id, repo)
    machine.set_details(task, title=task_data.title, description=task_data.description)
    if task_data.status is not None:
        machine.set_status(task, task_data.status)
    if task_data.priority is not None:
        machine.set_priority(task, task_data.priority)
    if task_data.due_date is not None:
        machine.set_due_date(task, task_data.due_date)
    if task_data.subtasks is not None:
        machine.set_subtasks(task, task_data.subtasks)

    if task_data.tags is not None:
        task.tags = task_data.tags
    if "assigned_to_id" in provided:
        task.assigned_to_id = task_data.assigned_to_id

    repo.save(task)

    logger.info(f"✅ Task {task_id} updated ({', '.join(sorted(provided)) or 'no fields'})")
    return task_response(task, repo)


@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
):
    """
    Delete a task (creator or admin only).

    Raises:
        404: Task not found
        403: Not creator or admin
    """
    logger.info(f"➡️  Delete task {task_id} request from: {current_user.email}")

    task = get_task_or_404(task_id, repo)
    can_delete_task(current_user, task).enforce()

    repo.delete(task)

    logger.info(f"✅ Task {task_id} deleted")
    return MessageResponse(message="Task deleted successfully")


@router.post("/{task_id}/comments", response_model=TaskResponse)
def add_comment(
    task_id: UUID,
    comment: CommentCreate,
    current_user: User = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
    machine: TaskStateMachine = Depends(get_state_machine),
):
    """
    Append a comment to a task.

    Raises:
        404: Task not found
        403: Not admin, creator or assignee
        400: Comment empty or longer than 500 characters
    """
    logger.info(f"➡️  Add comment to task {task_id} from: {current_user.email}")

    task = get_task_or_404(task_id, repo)
    can_modify_task(current_user, task).enforce()

    machine.add_comment(task, current_user.id, comment.text)
    repo.save(task)

    logger.info(f"✅ Comment added to task {task_id}")
    return task_response(task, repo)


@router.put("/{task_id}/archive", response_model=TaskResponse)
def toggle_archive(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    repo: TaskRepository = Depends(get_task_repository),
    machine: TaskStateMachine = Depends(get_state_machine),
):
    """
    Archive or unarchive a task (creator or admin only).

    Raises:
        404: Task not found
        403: Not creator or admin
    """
    logger.info(f"➡️  Toggle archive on task {task_id} from: {current_user.email}")

    task = get_task_or_404(task_id, repo)
    can_archive_task(current_user, task).enforce()

    machine.toggle_archive(task)
    repo.save(task)

    logger.info(f"✅ Task {task_id} {'archived' if task.is_archived else 'unarchived'}")
    return task_response(task, repo)
