# tests/helpers.py

from __future__ import annotations

from types import SimpleNamespace

from taskboard.extensions import db
from taskboard.models.user import User

PASSWORD = "secret123"


def get_user(user_id: int) -> User:
    return db.session.get(User, user_id)


def login(client, app, user_id: int) -> None:
    with app.app_context():
        email = db.session.get(User, user_id).email
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()


def item(completed: bool, text: str = "step") -> SimpleNamespace:
    return SimpleNamespace(text=text, completed=completed)


def req(user_id: int, status: str, rid: int | None = None, reason: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(id=rid, assigned_to_user_id=user_id, status=status, rejection_reason=reason)
