"""
Access Policy - Pure authorization decisions for task and user operations

Every route consults this module instead of re-deriving ownership checks inline.
Decisions never mutate state; the only collaborator call is the read-only
task count used before deleting a user.

Usage:
    decision = can_modify_task(current_user, task)
    decision.enforce()  # Raises the matching domain error when denied
"""

from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Protocol
import enum
import logging

from taskmanager.core.exceptions import (
    AuthorizationError,
    ConflictError,
    IntegrityError,
    TaskManagerError,
)
from taskmanager.models.user import UserRole

logger = logging.getLogger(__name__)


class Capability(str, enum.Enum):
    """Operations a principal may perform on a task"""
    READ = "read"
    MODIFY = "modify"  # Update fields, add comments, toggle subtasks
    DELETE = "delete"
    ARCHIVE = "archive"
    ADMIN_ONLY = "admin-only"


class Relation(str, enum.Enum):
    """How a principal relates to a task"""
    ADMIN = "admin"
    CREATOR = "creator"
    ASSIGNEE = "assignee"


class DenialReason(str, enum.Enum):
    """Stable machine-readable reasons for a denied decision"""
    NOT_OWNER_OR_ASSIGNEE = "not-owner-or-assignee"
    NOT_CREATOR_OR_ADMIN = "not-creator-or-admin"
    NOT_ADMIN = "not-admin"
    CANNOT_DEACTIVATE_SELF = "cannot-deactivate-self"
    CANNOT_DELETE_SELF = "cannot-delete-self"
    USER_HAS_TASKS = "user-has-tasks"


class SelfAction(str, enum.Enum):
    DEACTIVATE = "deactivate"
    DELETE = "delete"


# Which relations grant each capability, and the reason given when none applies
CAPABILITY_GRANTS = {
    Capability.READ: (
        frozenset({Relation.ADMIN, Relation.CREATOR, Relation.ASSIGNEE}),
        DenialReason.NOT_OWNER_OR_ASSIGNEE,
    ),
    Capability.MODIFY: (
        frozenset({Relation.ADMIN, Relation.CREATOR, Relation.ASSIGNEE}),
        DenialReason.NOT_OWNER_OR_ASSIGNEE,
    ),
    Capability.DELETE: (
        frozenset({Relation.ADMIN, Relation.CREATOR}),
        DenialReason.NOT_CREATOR_OR_ADMIN,
    ),
    Capability.ARCHIVE: (
        frozenset({Relation.ADMIN, Relation.CREATOR}),
        DenialReason.NOT_CREATOR_OR_ADMIN,
    ),
    Capability.ADMIN_ONLY: (
        frozenset({Relation.ADMIN}),
        DenialReason.NOT_ADMIN,
    ),
}

_DENIAL_MESSAGES = {
    DenialReason.NOT_OWNER_OR_ASSIGNEE: "Access denied",
    DenialReason.NOT_CREATOR_OR_ADMIN: "Access denied. Only task creator or admin can perform this action.",
    DenialReason.NOT_ADMIN: "Admin access required",
    DenialReason.CANNOT_DEACTIVATE_SELF: "You cannot deactivate your own account",
    DenialReason.CANNOT_DELETE_SELF: "You cannot delete your own account",
    DenialReason.USER_HAS_TASKS: "Cannot delete user with existing tasks. Please reassign or delete tasks first.",
}


class TaskCounter(Protocol):
    """Read-only collaborator used by can_delete_user"""

    def count_tasks_referencing(self, user_id: Any) -> int:
        ...


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of a policy check - truthy when allowed"""
    allowed: bool
    reason: Optional[DenialReason] = None

    def __bool__(self) -> bool:
        return self.allowed

    def enforce(self) -> None:
        """Raise the domain error matching the denial reason (no-op when allowed)"""
        if not self.allowed:
            raise error_for_denial(self.reason)


ALLOW = PolicyDecision(allowed=True)


def deny(reason: DenialReason) -> PolicyDecision:
    return PolicyDecision(allowed=False, reason=reason)


def error_for_denial(reason: DenialReason) -> TaskManagerError:
    """Map a denial reason to the error the HTTP boundary renders"""
    message = _DENIAL_MESSAGES[reason]
    if reason in (DenialReason.NOT_OWNER_OR_ASSIGNEE, DenialReason.NOT_CREATOR_OR_ADMIN):
        return AuthorizationError(message, reason="access-denied", policy_reason=reason.value)
    if reason == DenialReason.NOT_ADMIN:
        return AuthorizationError(message, reason="not-admin", policy_reason=reason.value)
    if reason in (DenialReason.CANNOT_DEACTIVATE_SELF, DenialReason.CANNOT_DELETE_SELF):
        return ConflictError(message, reason=reason.value, status_code=400)
    return IntegrityError(message, reason=reason.value)


def is_admin(principal: Any) -> bool:
    return principal is not None and principal.role == UserRole.ADMIN


def _same_id(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def relations_to_task(principal: Any, task: Any) -> FrozenSet[Relation]:
    """All relations the principal holds on the task"""
    relations = set()
    if is_admin(principal):
        relations.add(Relation.ADMIN)
    if _same_id(principal.id, task.created_by_id):
        relations.add(Relation.CREATOR)
    if _same_id(principal.id, task.assigned_to_id):
        relations.add(Relation.ASSIGNEE)
    return frozenset(relations)


def check_task_capability(principal: Any, task: Any, capability: Capability) -> PolicyDecision:
    """Evaluate a capability against the grant table"""
    granted_to, denial = CAPABILITY_GRANTS[capability]
    if relations_to_task(principal, task) & granted_to:
        return ALLOW
    logger.debug(f"🚫 {capability.value} denied on task {task.id} for user {principal.id}: {denial.value}")
    return deny(denial)


def can_read_task(principal: Any, task: Any) -> PolicyDecision:
    return check_task_capability(principal, task, Capability.READ)


def can_modify_task(principal: Any, task: Any) -> PolicyDecision:
    return check_task_capability(principal, task, Capability.MODIFY)


def can_delete_task(principal: Any, task: Any) -> PolicyDecision:
    return check_task_capability(principal, task, Capability.DELETE)


def can_archive_task(principal: Any, task: Any) -> PolicyDecision:
    return check_task_capability(principal, task, Capability.ARCHIVE)


def can_access_admin(principal: Any) -> PolicyDecision:
    return ALLOW if is_admin(principal) else deny(DenialReason.NOT_ADMIN)


def can_reassign_role(principal: Any) -> PolicyDecision:
    """Only admins may change roles, whatever the target"""
    return can_access_admin(principal)


def can_deactivate_or_delete_self(
    principal_id: Any,
    target_id: Any,
    action: SelfAction = SelfAction.DEACTIVATE,
) -> PolicyDecision:
    """
    Self-protection rule: nobody may deactivate or delete their own account,
    independent of role.
    """
    if _same_id(principal_id, target_id):
        if action == SelfAction.DELETE:
            return deny(DenialReason.CANNOT_DELETE_SELF)
        return deny(DenialReason.CANNOT_DEACTIVATE_SELF)
    return ALLOW


def can_delete_user(principal: Any, target_user: Any, task_repository: TaskCounter) -> PolicyDecision:
    """
    Admin only, never self, and only when no task references the target
    as creator or assignee.
    """
    if not is_admin(principal):
        return deny(DenialReason.NOT_ADMIN)

    decision = can_deactivate_or_delete_self(principal.id, target_user.id, SelfAction.DELETE)
    if not decision:
        return decision

    if task_repository.count_tasks_referencing(target_user.id) > 0:
        return deny(DenialReason.USER_HAS_TASKS)

    return ALLOW
