"""
Core Package - Configuration, security, errors and the access policy

IMPORTANT: Only import config and security here.
Dependencies and policy must be imported directly to avoid circular imports.
"""

from taskmanager.core.config import settings, get_settings
from taskmanager.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_token,
    issue_user_token,
)

__all__ = [
    "settings",
    "get_settings",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
    "issue_user_token",
]
