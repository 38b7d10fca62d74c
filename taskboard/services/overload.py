# taskboard/services/overload.py
from __future__ import annotations
import logging
from flask import current_app
from ..extensions import db
from ..errors import InvalidInput
from ..models.task import Task, TaskAssignee, STATUS_COMPLETED
from ..models.user import User

log = logging.getLogger(__name__)

DEFAULT_OVERLOAD_THRESHOLD = 2


def _threshold() -> int:
    return int(current_app.config.get("OVERLOAD_THRESHOLD", DEFAULT_OVERLOAD_THRESHOLD))


def count_active_high_priority(user_id: int) -> int:
    return (
        Task.query
        .join(TaskAssignee, TaskAssignee.task_id == Task.id)
        .filter(
            TaskAssignee.user_id == user_id,
            Task.priority == "High",
            Task.status != STATUS_COMPLETED,
        )
        .count()
    )


def is_overloaded(user_id: int) -> bool:
    return count_active_high_priority(user_id) >= _threshold()


def validate_user_ids(user_ids, field: str = "userIds") -> list[int]:
    if not isinstance(user_ids, list):
        raise InvalidInput(f"{field} must be an array of user IDs")
    out = []
    for uid in user_ids:
        # bool is an int subclass; "true" is not a user id
        if isinstance(uid, int) and not isinstance(uid, bool):
            out.append(uid)
        elif isinstance(uid, str) and uid.strip().isdigit():
            out.append(int(uid))
        else:
            raise InvalidInput(f"{field} must be an array of user IDs")
    return out


def partition_candidates(user_ids) -> tuple[list[int], list[int]]:
    """Split candidates into (assign directly, needs approval), keeping input order."""
    direct, overloaded = [], []
    seen = set()
    for uid in user_ids:
        if uid in seen:
            continue
        seen.add(uid)
        (overloaded if is_overloaded(uid) else direct).append(uid)
    if overloaded:
        log.info("Overloaded candidates routed to approval: %s", overloaded)
    return direct, overloaded


def find_overloaded_users(user_ids) -> list[dict]:
    ids = validate_user_ids(user_ids)
    found = []
    for uid in dict.fromkeys(ids):
        if not is_overloaded(uid):
            continue
        user = db.session.get(User, uid)
        if user:
            found.append({"id": user.id, "name": user.name, "profileImageUrl": user.profile_image_url})
        else:
            found.append({"id": uid})
    return found
