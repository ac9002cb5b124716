"""
Security Module - Password hashing and JWT token generation/validation
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
import logging

from taskmanager.core.config import settings

logger = logging.getLogger(__name__)

# Password hashing context - bcrypt with configurable cost factor
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",  # Automatically upgrade old hashes
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(password: str) -> str:
    """
    Hash a plaintext password using bcrypt (salted automatically).

    Returns:
        Hashed password string safe to store in the database
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a bcrypt hash.

    Returns:
        True if password matches, False otherwise (including corrupted hashes)
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.error(f"❌ Password verification error: {str(e)}")
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create signed JWT access token.

    Args:
        data: Claims to encode (typically {"sub": user_id})
        expires_delta: Optional custom expiration time

    Example:
        token = create_access_token({"sub": str(user.id)})
    """
    to_encode = data.copy()

    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    logger.debug(f"✅ Created access token expiring at {expire}")
    return encoded_jwt


def issue_user_token(user) -> str:
    """
    Access token for a user account.

    The role claim is informational for clients only: authorization always
    re-reads the role from the database, so a role change applies immediately.
    """
    role = getattr(user.role, "value", user.role)
    return create_access_token({"sub": str(user.id), "role": role})


def verify_token(token: str) -> Optional[dict]:
    """
    Verify signature and expiry of a JWT.

    Returns:
        Decoded payload dict if valid, None if invalid/expired
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("⚠️  Token expired")
        return None
    except JWTError as e:
        logger.warning(f"⚠️  Invalid token: {str(e)}")
        return None


def decode_token(token: str) -> Optional[str]:
    """Extract user ID ("sub" claim) from a JWT, None if the token is invalid"""
    payload = verify_token(token)
    if payload:
        return payload.get("sub")
    return None
