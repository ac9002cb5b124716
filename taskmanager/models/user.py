"""
User Model - Represents authenticated users in the system
"""

from sqlalchemy import Column, String, Boolean, DateTime, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
import uuid
import enum

from taskmanager.database import Base
from taskmanager.utils.timestamps import utcnow


class UserRole(str, enum.Enum):
    """User role enumeration - defines permission levels"""
    USER = "user"  # Regular user - manages tasks they created or are assigned
    ADMIN = "admin"  # Admin user - manages all tasks and users


class User(Base):
    """
    User table - stores authentication and profile information.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    # Authentication fields
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)  # bcrypt hash

    # Profile information
    name = Column(String(50), nullable=False)

    # Authorization
    role = Column(
        SQLEnum(UserRole, values_callable=lambda e: [m.value for m in e]),
        default=UserRole.USER,
        nullable=False,
    )

    # Account status - deactivated users cannot log in
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    tasks_created = relationship("Task", foreign_keys="Task.created_by_id", back_populates="creator")
    tasks_assigned = relationship("Task", foreign_keys="Task.assigned_to_id", back_populates="assignee")

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
