"""
Admin API - User management, dashboard statistics and the all-tasks view (admin only)
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging
import math

from taskmanager.database import get_db
from taskmanager.api.auth import commit_user, ensure_email_available
from taskmanager.api.tasks import task_list_response, task_response
from taskmanager.core.dependencies import get_current_admin_user, get_task_repository
from taskmanager.core.exceptions import InvalidRole, NotFoundError
from taskmanager.core.policy import (
    SelfAction,
    can_deactivate_or_delete_self,
    can_delete_user,
    can_reassign_role,
)
from taskmanager.models import TaskPriority, TaskStatus, User, UserRole
from taskmanager.schemas import (
    AdminUserUpdate,
    DashboardResponse,
    MessageResponse,
    RoleUpdate,
    TaskListResponse,
    UserDetailResponse,
    UserListResponse,
    UserResponse,
    UserTaskStats,
)
from taskmanager.schemas.admin import DashboardStats, PriorityCounts, TaskCounts, UserCounts
from taskmanager.services import TaskRepository
from taskmanager.utils.timestamps import utcnow

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(get_current_admin_user)])

# Response field names for each status
STATUS_FIELDS = {
    TaskStatus.PENDING: "pending",
    TaskStatus.IN_PROGRESS: "in_progress",
    TaskStatus.COMPLETED: "completed",
    TaskStatus.CANCELLED: "cancelled",
}


def get_user_or_404(user_id: UUID, db: Session) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️  User {user_id} not found")
        raise NotFoundError(f"User with ID {user_id} not found", reason="user-not-found")
    return user


def parse_role(value: str) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        logger.warning(f"⚠️  Rejected role {value!r}")
        raise InvalidRole()


@router.get("/users", response_model=UserListResponse)
def get_all_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
    search: Optional[str] = Query(None, description="Search name and email"),
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """Paginated user list, newest first"""
    logger.info(f"➡️  Get all users request from admin: {current_admin.email}")

    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    total = query.count()

    offset = (page - 1) * limit
    users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()

    logger.info(f"✅ Returning {len(users)} users (total: {total})")
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        count=len(users),
        total=total,
        page=page,
        pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/users/{user_id}", response_model=UserDetailResponse)
def get_user_by_id(
    user_id: UUID,
    db: Session = Depends(get_db),
    repo: TaskRepository = Depends(get_task_repository),
):
    """
    Get user by ID with a status breakdown of tasks assigned to them.

    Raises:
        404: User not found
    """
    user = get_user_or_404(user_id, db)

    stats = UserTaskStats()
    for task_status, count in repo.status_counts(assigned_to_id=user.id).items():
        setattr(stats, STATUS_FIELDS[task_status], count)
        stats.total += count

    return UserDetailResponse(user=UserResponse.model_validate(user), task_stats=stats)


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: UUID,
    changes: AdminUserUpdate,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """
    Update a user's name, email, role or active status.

    Raises:
        404: User not found
        400: Invalid role, or admin deactivating their own account
        409: Email already taken
    """
    logger.info(f"➡️  Update user {user_id} request from admin: {current_admin.email}")

    user = get_user_or_404(user_id, db)

    if changes.is_active is False:
        can_deactivate_or_delete_self(current_admin.id, user.id, SelfAction.DEACTIVATE).enforce()
    role = None
    if changes.role is not None:
        can_reassign_role(current_admin).enforce()
        role = parse_role(changes.role)
    if changes.email is not None and changes.email != user.email:
        ensure_email_available(db, changes.email, exclude_user=user)

    if changes.name is not None:
        user.name = changes.name
    if changes.email is not None:
        user.email = changes.email
    if role is not None:
        user.role = role
    if changes.is_active is not None:
        user.is_active = changes.is_active

    commit_user(db, user, "update user")
    logger.info(f"✅ User {user_id} updated")
    return UserResponse.model_validate(user)


@router.put("/users/{user_id}/role", response_model=UserResponse)
def change_user_role(
    user_id: UUID,
    role_update: RoleUpdate,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """
    Change a user's role.

    Raises:
        404: User not found
        400: Role is not user or admin
    """
    logger.info(f"➡️  Change role of user {user_id} request from admin: {current_admin.email}")

    user = get_user_or_404(user_id, db)
    can_reassign_role(current_admin).enforce()

    user.role = parse_role(role_update.role)
    commit_user(db, user, "change user role")

    logger.info(f"✅ User {user_id} role set to {user.role.value}")
    return UserResponse.model_validate(user)


@router.patch("/users/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: UUID,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """
    Deactivate user account. Deactivated users cannot log in.

    Raises:
        404: User not found
        400: Admin attempting to deactivate their own account
    """
    logger.info(f"➡️  Deactivate user {user_id} request from admin: {current_admin.email}")

    user = get_user_or_404(user_id, db)
    can_deactivate_or_delete_self(current_admin.id, user.id, SelfAction.DEACTIVATE).enforce()

    user.is_active = False
    commit_user(db, user, "deactivate user")

    logger.info(f"✅ User {user_id} deactivated")
    return UserResponse.model_validate(user)


@router.patch("/users/{user_id}/activate", response_model=UserResponse)
def activate_user(
    user_id: UUID,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """
    Re-enable a deactivated account.

    Raises:
        404: User not found
    """
    logger.info(f"➡️  Activate user {user_id} request from admin: {current_admin.email}")

    user = get_user_or_404(user_id, db)
    user.is_active = True
    commit_user(db, user, "activate user")

    logger.info(f"✅ User {user_id} activated")
    return UserResponse.model_validate(user)


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: UUID,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
    repo: TaskRepository = Depends(get_task_repository),
):
    """
    Delete a user who is referenced by no task.

    Raises:
        404: User not found
        400: Deleting own account, or user still has tasks
    """
    logger.info(f"➡️  Delete user {user_id} request from admin: {current_admin.email}")

    user = get_user_or_404(user_id, db)
    can_delete_user(current_admin, user, repo).enforce()

    try:
        db.delete(user)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to delete user: {str(e)}", exc_info=True)
        raise

    logger.info(f"✅ User {user_id} deleted")
    return MessageResponse(message="User deleted successfully")


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
    repo: TaskRepository = Depends(get_task_repository),
):
    """User, task and priority counts plus recent and overdue tasks"""
    logger.info(f"➡️  Dashboard request from admin: {current_admin.email}")

    users = UserCounts()
    for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all():
        users.total += count
        if role == UserRole.ADMIN:
            users.admins = count
        else:
            users.regular += count
    users.active = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0

    tasks = TaskCounts(archived=repo.archived_count())
    for task_status, count in repo.status_counts().items():
        setattr(tasks, STATUS_FIELDS[task_status], count)
        tasks.total += count

    priorities = PriorityCounts()
    for priority, count in repo.priority_counts().items():
        setattr(priorities, TaskPriority(priority).value, count)

    logger.info("✅ Returning dashboard statistics")
    return DashboardResponse(
        stats=DashboardStats(users=users, tasks=tasks, priorities=priorities),
        recent_tasks=[task_response(task, repo) for task in repo.recent_tasks(limit=5)],
        overdue_tasks=[task_response(task, repo) for task in repo.overdue_tasks(utcnow(), limit=10)],
    )


@router.get("/tasks", response_model=TaskListResponse)
def get_all_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = Query(None),
    assigned_to: Optional[UUID] = Query(None),
    created_by: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    include_archived: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    repo: TaskRepository = Depends(get_task_repository),
):
    """All tasks in the system with admin filters"""
    tasks, total = repo.list_tasks(
        status=status_filter,
        priority=priority,
        assigned_to_id=assigned_to,
        created_by_id=created_by,
        search=search,
        include_archived=include_archived,
        page=page,
        limit=limit,
    )
    return task_list_response(tasks, total, page, limit, repo)
