"""
Domain Exceptions - Typed failures raised by the policy, state machine and routes

Every error carries an HTTP status code and a stable machine-readable reason
so the global exception handler can render a specific client message.
"""

from typing import Any, Dict, Optional


class TaskManagerError(Exception):
    """Base class for all domain errors"""
    status_code: int = 400
    reason: str = "error"
    message: str = "Request could not be processed"
    headers: Optional[Dict[str, str]] = None  # Extra response headers

    def __init__(
        self,
        message: Optional[str] = None,
        reason: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.message
        self.reason = reason or self.reason
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable body for error responses"""
        return {
            "error": type(self).__name__,
            "reason": self.reason,
            "detail": self.message,
        }


class ValidationError(TaskManagerError):
    """Malformed input: bad enum value, length bounds, malformed date"""
    status_code = 400
    reason = "validation-failed"
    message = "Validation failed"


class InvalidStatus(ValidationError):
    message = "Status must be pending, in-progress, completed, or cancelled"


class InvalidRole(ValidationError):
    reason = "invalid-role"
    message = "Role must be either user or admin"


class DueDateInPast(ValidationError):
    reason = "due-date-in-past"
    message = "Due date cannot be in the past"


class EmptyComment(ValidationError):
    reason = "empty-comment"
    message = "Comment must be between 1 and 500 characters"


class AuthenticationError(TaskManagerError):
    """Missing or invalid credentials"""
    status_code = 401
    reason = "invalid-credentials"
    message = "Invalid authentication credentials"
    headers = {"WWW-Authenticate": "Bearer"}


class AuthorizationError(TaskManagerError):
    """Policy denial - carries the policy's denial reason"""
    status_code = 403
    reason = "access-denied"
    message = "Access denied"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None,
                 policy_reason: Optional[str] = None):
        super().__init__(message=message, reason=reason)
        self.policy_reason = policy_reason

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.policy_reason:
            body["policy_reason"] = self.policy_reason
        return body


class NotFoundError(TaskManagerError):
    """Referenced entity does not exist"""
    status_code = 404
    reason = "not-found"
    message = "Resource not found"


class ConflictError(TaskManagerError):
    """Request conflicts with current state (email taken, self-deactivation)"""
    status_code = 409
    reason = "conflict"
    message = "Request conflicts with current state"


class IntegrityError(TaskManagerError):
    """Delete blocked by existing references"""
    status_code = 400
    reason = "user-has-tasks"
    message = "Cannot delete user with existing tasks. Please reassign or delete tasks first."
