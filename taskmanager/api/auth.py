"""
Authentication API - Registration, login, logout and own-profile endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from taskmanager.database import get_db
from taskmanager.schemas import (
    MessageResponse,
    PasswordChange,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    UserUpdate,
)
from taskmanager.models import User
from taskmanager.core.exceptions import AuthenticationError, ConflictError
from taskmanager.core.security import hash_password, issue_user_token, verify_password
from taskmanager.core.dependencies import ensure_active, get_current_user
from taskmanager.utils.timestamps import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


def ensure_email_available(db: Session, email: str, exclude_user: User = None) -> None:
    """Raise 409 email-taken if another account already uses this email"""
    query = db.query(User).filter(User.email == email)
    if exclude_user is not None:
        query = query.filter(User.id != exclude_user.id)
    if query.first():
        logger.warning(f"⚠️  Email already registered: {email}")
        raise ConflictError("Email is already taken", reason="email-taken")


def commit_user(db: Session, user: User, action: str) -> User:
    """Commit pending user changes, rolling back and reporting 500 on failure"""
    try:
        db.commit()
        db.refresh(user)
        return user
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to {action}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}. Please try again later."
        )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Register new user account.

    Process:
        1. Validate input (pydantic handles this)
        2. Check if email already exists
        3. Hash password and create user
        4. Generate JWT token

    Raises:
        409: Email already registered
    """
    logger.info(f"➡️  Registration attempt for email: {user_data.email}")

    ensure_email_available(db, user_data.email)

    new_user = User(
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        name=user_data.name,
        # role defaults to user, is_active defaults to True
    )
    db.add(new_user)
    commit_user(db, new_user, "register user")
    logger.info(f"✅ User registered successfully: {new_user.email}")

    access_token = issue_user_token(new_user)
    return TokenResponse(access_token=access_token, user=UserResponse.model_validate(new_user))


@router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate user and return JWT token. Updates last_login.

    Raises:
        401: Invalid credentials
        403: Account inactive (account-inactive)
    """
    logger.info(f"➡️  Login attempt for email: {credentials.email}")

    user = db.query(User).filter(User.email == credentials.email).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"⚠️  Login failed - invalid credentials: {credentials.email}")
        raise AuthenticationError("Invalid email or password")

    ensure_active(user)

    # Login should succeed even if the timestamp update fails
    try:
        user.last_login = utcnow()
        db.commit()
        db.refresh(user)
    except Exception as e:
        logger.error(f"⚠️  Failed to update last_login: {str(e)}")
        db.rollback()

    access_token = issue_user_token(user)

    logger.info(f"✅ Login successful: {user.email}")
    return TokenResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(current_user: User = Depends(get_current_user)):
    """
    Logout current user.

    JWT tokens are stateless - the client deletes its token.
    """
    logger.info(f"✅ User logged out: {current_user.email}")
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Current user's profile - used by clients to verify their token"""
    logger.debug(f"➡️  Profile request from: {current_user.email}")
    return UserResponse.model_validate(current_user)


@router.put("/me", response_model=UserResponse)
def update_profile(
    profile: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update own name and/or email.

    Raises:
        409: Email already taken by another account
    """
    logger.info(f"➡️  Profile update from: {current_user.email}")

    if profile.email is not None and profile.email != current_user.email:
        ensure_email_available(db, profile.email, exclude_user=current_user)
        current_user.email = profile.email
    if profile.name is not None:
        current_user.name = profile.name

    commit_user(db, current_user, "update profile")
    logger.info(f"✅ Profile updated: {current_user.email}")
    return UserResponse.model_validate(current_user)


@router.put("/me/password", response_model=MessageResponse)
def change_password(
    passwords: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Change own password after verifying the current one.

    Raises:
        400: Current password incorrect
    """
    logger.info(f"➡️  Password change from: {current_user.email}")

    if not verify_password(passwords.current_password, current_user.password_hash):
        logger.warning(f"⚠️  Password change failed - wrong current password: {current_user.email}")
        raise AuthenticationError("Current password is incorrect", status_code=400)

    current_user.password_hash = hash_password(passwords.new_password)
    commit_user(db, current_user, "change password")

    logger.info(f"✅ Password changed: {current_user.email}")
    return MessageResponse(message="Password updated successfully")
