# tests/conftest.py

from __future__ import annotations

import itertools

import pytest

from taskboard import create_app
from taskboard.config import Config
from taskboard.extensions import db
from taskboard.models.task import Task
from taskboard.models.user import User

from .helpers import PASSWORD


class UnitTestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    SESSION_COOKIE_SECURE = False
    LOG_TO_FILE = False
    LOG_LEVEL = "WARNING"
    OVERLOAD_THRESHOLD = 2


@pytest.fixture()
def app():
    app = create_app(UnitTestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def ctx(app):
    """
    Pushed app context for service-level tests.

    HTTP tests must NOT use this: Flask-Login caches the current user on the
    app context, so requests would share it.
    """
    with app.app_context():
        yield
        db.session.rollback()


@pytest.fixture()
def make_user(app):
    """Create a user and return its id (safe with or without a pushed context)."""
    counter = itertools.count(1)

    def _make(name: str | None = None, role: str = "member") -> int:
        n = next(counter)
        with app.app_context():
            user = User(name=name or f"User {n}", email=f"user{n}@example.com", role=role)
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture()
def admin_id(make_user) -> int:
    return make_user("Admin", role="admin")


@pytest.fixture()
def seed_task(ctx):
    """Insert a task directly, bypassing the services."""

    def _seed(assignees=(), priority="High", status="Pending", title="Seeded") -> Task:
        task = Task(title=title, priority=priority, status=status)
        for uid in assignees:
            task.add_assignee(uid)
        db.session.add(task)
        db.session.commit()
        return task

    return _seed

