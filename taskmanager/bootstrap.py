"""
Admin Bootstrap - Ensure an administrator account exists

Runs at application startup and as a standalone command:
    ADMIN_EMAIL=admin@example.com ADMIN_PASSWORD=... taskmanager-setup-admin
"""

from typing import Optional
import logging
import sys

from sqlalchemy.orm import Session

from taskmanager.core.config import settings
from taskmanager.core.security import hash_password
from taskmanager.models import User, UserRole

logger = logging.getLogger(__name__)


def ensure_admin_user(
    db: Session,
    email: Optional[str] = None,
    password: Optional[str] = None,
    name: Optional[str] = None,
) -> Optional[User]:
    """
    Create the bootstrap admin unless an admin already exists.

    Credentials default to ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME settings.
    An existing non-admin account with the same email is promoted.

    Returns:
        The admin user, or None when no credentials are configured
    """
    existing_admin = db.query(User).filter(User.role == UserRole.ADMIN).first()
    if existing_admin:
        logger.info(f"👤 Admin user already exists: {existing_admin.email}")
        return existing_admin

    email = email or settings.ADMIN_EMAIL
    password = password or settings.ADMIN_PASSWORD
    if not email or not password:
        logger.warning("⚠️  No admin user exists and ADMIN_EMAIL/ADMIN_PASSWORD are not set")
        return None

    user = db.query(User).filter(User.email == email).first()
    if user:
        user.role = UserRole.ADMIN
        user.is_active = True
        logger.info(f"⬆️  Promoting existing user to admin: {email}")
    else:
        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name or settings.ADMIN_NAME,
            role=UserRole.ADMIN,
            is_active=True,
        )
        db.add(user)
        logger.info(f"✅ Admin user created: {email}")

    try:
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to set up admin user: {str(e)}", exc_info=True)
        raise
    return user


def main() -> int:
    """Console entry point - create tables if needed, then ensure the admin exists"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    from taskmanager.database import SessionLocal, init_db

    init_db()
    with SessionLocal() as db:
        admin = ensure_admin_user(db)
    if admin is None:
        logger.error("❌ Set ADMIN_EMAIL and ADMIN_PASSWORD to create the admin user")
        return 1
    logger.info("Please change the admin password after first login.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
