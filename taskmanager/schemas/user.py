"""
User Schemas - Pydantic models for request/response validation
"""

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from taskmanager.models.user import UserRole


def _check_name(v: str) -> str:
    """Name must be 2-50 characters after trimming"""
    if not v or not v.strip():
        raise ValueError('Name cannot be empty')
    if len(v.strip()) < 2 or len(v.strip()) > 50:
        raise ValueError('Name must be between 2 and 50 characters')
    return v.strip()


def _check_password(v: str) -> str:
    """Enforce password strength requirements"""
    if len(v) < 8:
        raise ValueError('Password must be at least 8 characters long')
    if not any(char.isdigit() for char in v):
        raise ValueError('Password must contain at least one digit')
    if not any(char.isupper() for char in v):
        raise ValueError('Password must contain at least one uppercase letter')
    return v


class UserBase(BaseModel):
    """Base schema with common user fields"""
    email: EmailStr
    name: str


class UserCreate(UserBase):
    """Schema for user registration - requires password"""
    password: str  # Plaintext password (hashed before storage)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _check_name(v)


class UserLogin(BaseModel):
    """Schema for login request"""
    email: EmailStr
    password: str


class UserResponse(UserBase):
    """Schema for user data in responses - excludes password"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    role: UserRole
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None  # None if never logged in


class UserUpdate(BaseModel):
    """Schema for a user updating their own profile"""
    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _check_name(v) if v is not None else v


class PasswordChange(BaseModel):
    """Schema for changing the current user's password"""
    current_password: str
    new_password: str

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        return _check_password(v)


class AdminUserUpdate(UserUpdate):
    """
    Schema for admin edits of any user.
    role is a plain string so an unknown value is reported as invalid-role.
    """
    role: Optional[str] = None
    is_active: Optional[bool] = None


class RoleUpdate(BaseModel):
    """Schema for changing a user's role"""
    role: str


class TokenResponse(BaseModel):
    """Schema for authentication token response"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class UserListResponse(BaseModel):
    """Schema for paginated user list"""
    users: List[UserResponse]
    count: int  # Users on this page
    total: int  # Users matching the filters
    page: int
    pages: int


class UserTaskStats(BaseModel):
    """Status breakdown of tasks assigned to a user"""
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0


class UserDetailResponse(BaseModel):
    """Single user with their assigned-task statistics"""
    user: UserResponse
    task_stats: UserTaskStats
