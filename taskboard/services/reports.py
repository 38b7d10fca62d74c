# taskboard/services/reports.py
"""Read-side dashboards. Counts come from the cached task status."""
from __future__ import annotations
from datetime import datetime
from typing import Optional

from sqlalchemy import func

from ..models.task import (
    PRIORITIES,
    STATUS_COMPLETED,
    STATUS_PENDING,
    TASK_STATUSES,
    Task,
    TaskAssignee,
)
from ..models.user import User

RECENT_LIMIT = 10


def _scoped(user_id: Optional[int]):
    qry = Task.query
    if user_id is not None:
        qry = qry.filter(Task.assignees.any(TaskAssignee.user_id == user_id))
    return qry


def _grouped(qry, column, keys) -> dict:
    raw = dict(qry.with_entities(column, func.count(Task.id)).group_by(column).all())
    return {k: raw.get(k, 0) for k in keys}


def _recent(qry, with_people: bool = False) -> list[dict]:
    out = []
    for t in qry.order_by(Task.created_at.desc(), Task.id.desc()).limit(RECENT_LIMIT).all():
        row = {
            "id": t.id,
            "title": t.title,
            "status": t.status,
            "priority": t.priority,
            "dueDate": t.due_date.isoformat() if t.due_date else None,
            "createdAt": t.created_at.isoformat() if t.created_at else None,
        }
        if with_people:
            row["assignedBy"] = t.created_by.summary() if t.created_by else None
            row["assignedTo"] = [a.user.summary() for a in t.assignees]
        out.append(row)
    return out


def dashboard(user_id: Optional[int] = None) -> dict:
    """Statistics for everyone (admin) or for the tasks of one user."""
    qry = _scoped(user_id)
    now = datetime.utcnow()

    total = qry.count()
    statistics = {
        "totalTasks": total,
        "pendingTasks": qry.filter(Task.status == STATUS_PENDING).count(),
        "completedTasks": qry.filter(Task.status == STATUS_COMPLETED).count(),
        "overdueTasks": qry.filter(Task.status != STATUS_COMPLETED, Task.due_date < now).count(),
    }

    by_status = _grouped(qry, Task.status, TASK_STATUSES)
    distribution = {status.replace(" ", ""): count for status, count in by_status.items()}
    distribution["All"] = total

    return {
        "statistics": statistics,
        "chart": {
            "taskDistribution": distribution,
            "taskPriorityLevels": _grouped(qry, Task.priority, PRIORITIES),
        },
        "recentTasks": _recent(qry, with_people=user_id is not None),
    }


def users_with_tasks_grouped() -> list[dict]:
    out = []
    for user in User.query.order_by(User.name.asc()).all():
        grouped = {status: [] for status in TASK_STATUSES}
        tasks = (
            _scoped(user.id)
            .order_by(Task.created_at.desc(), Task.id.desc())
            .all()
        )
        for t in tasks:
            grouped.setdefault(t.status, []).append({
                "id": t.id,
                "title": t.title,
                "status": t.status,
                "createdAt": t.created_at.isoformat() if t.created_at else None,
                "dueDate": t.due_date.isoformat() if t.due_date else None,
            })
        out.append({**user.summary(), "tasks": grouped})
    return out
