"""Request helpers shared by the API tests"""

from datetime import timedelta

from taskmanager.core.security import issue_user_token
from taskmanager.utils.timestamps import utcnow

DEFAULT_PASSWORD = "Password1"


def auth_headers(user):
    token = issue_user_token(user)
    return {"Authorization": f"Bearer {token}"}


def future_iso(days=7):
    return (utcnow() + timedelta(days=days)).isoformat()


def past_iso(days=1):
    return (utcnow() - timedelta(days=days)).isoformat()
