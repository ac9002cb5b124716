"""
Shared fixtures: in-memory SQLite database, API client, user and task factories
"""

import os

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from taskmanager.core.security import hash_password
from taskmanager.database import Base, SessionLocal, engine
from taskmanager.main import app
from taskmanager.models import TaskPriority, User, UserRole
from taskmanager.services import TaskStateMachine
from taskmanager.utils.timestamps import utcnow
from tests.helpers import DEFAULT_PASSWORD


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make_user(name=None, email=None, role=UserRole.USER, password=DEFAULT_PASSWORD, is_active=True):
        counter["n"] += 1
        with SessionLocal() as session:
            user = User(
                name=name or f"User {counter['n']}",
                email=email or f"user{counter['n']}@example.com",
                password_hash=hash_password(password),
                role=role,
                is_active=is_active,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def alice(make_user):
    return make_user(name="Alice", email="alice@example.com")


@pytest.fixture
def bob(make_user):
    return make_user(name="Bob", email="bob@example.com")


@pytest.fixture
def carol(make_user):
    return make_user(name="Carol", email="carol@example.com")


@pytest.fixture
def make_task():
    machine = TaskStateMachine()

    def _make_task(creator, assignee=None, title="Write report", description="Quarterly numbers",
                   due_in=timedelta(days=7), priority=TaskPriority.MEDIUM, **fields):
        with SessionLocal() as session:
            task = machine.create_task(
                creator_id=creator.id,
                title=title,
                description=description,
                due_date=utcnow() + due_in,
                priority=priority,
                assigned_to_id=assignee.id if assignee else None,
            )
            for name, value in fields.items():
                setattr(task, name, value)
            session.add(task)
            session.commit()
            session.refresh(task)
            return task

    return _make_task

