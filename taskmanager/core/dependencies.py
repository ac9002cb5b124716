"""
FastAPI Dependencies - Reusable dependency injection functions
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from taskmanager.database import get_db
from taskmanager.core.exceptions import AuthenticationError, AuthorizationError
from taskmanager.core.policy import can_access_admin
from taskmanager.core.security import decode_token
from taskmanager.models import User
from taskmanager.services import TaskRepository, TaskStateMachine

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme - expects "Authorization: Bearer <token>" header
security = HTTPBearer()


def _credentials_error(detail: str = "Invalid authentication credentials") -> AuthenticationError:
    return AuthenticationError(detail, reason="invalid-token")


def ensure_active(user: User) -> None:
    """Deactivated accounts can neither log in nor use an issued token"""
    if not user.is_active:
        logger.warning(f"⚠️  Inactive user {user.email} attempted access")
        raise AuthorizationError(
            "Account is deactivated. Please contact an administrator.",
            reason="account-inactive",
        )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolve the authenticated principal from the bearer token.

    Raises:
        AuthenticationError (401, invalid-token): Token invalid, expired, or user not found
        AuthorizationError (403, account-inactive): User account is inactive
    """
    subject = decode_token(credentials.credentials)
    if not subject:
        logger.warning("⚠️  Invalid or expired token provided")
        raise _credentials_error()

    try:
        user_id = UUID(subject)
    except ValueError:
        logger.warning(f"⚠️  Token subject is not a user id: {subject}")
        raise _credentials_error()

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️  Token valid but user {user_id} not found")
        raise _credentials_error("User not found")

    ensure_active(user)

    logger.debug(f"✅ Authenticated user: {user.email}")
    return user


def get_current_admin_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Dependency for admin-only endpoints.

    Raises:
        AuthorizationError (403, not-admin): If user is not admin
    """
    decision = can_access_admin(current_user)
    if not decision:
        logger.warning(f"⚠️  Non-admin user {current_user.email} attempted admin access")
    decision.enforce()
    return current_user


def get_task_repository(db: Session = Depends(get_db)) -> TaskRepository:
    return TaskRepository(db)


def get_state_machine() -> TaskStateMachine:
    """Override in tests to pin the clock"""
    return TaskStateMachine()
