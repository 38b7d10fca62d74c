# taskboard/services/task_service.py
from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import Forbidden, InvalidInput, NotFound
from ..models.task import (
    PRIORITIES,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    STATUS_REJECTED,
    TASK_STATUSES,
    SOURCE_DIRECT,
    Task,
    TaskAssignee,
)
from ..models.user import User
from .assignment_workflow import create_request
from .overload import partition_candidates, validate_user_ids
from .status_resolver import checklist_progress, missing_candidate_ids, present_assignees
from .task_state import (
    apply_checklist_status,
    apply_resolved_status,
    lock_task,
    reconcile_task,
    requests_for,
    resolved_status,
)

log = logging.getLogger(__name__)

SORT_FIELDS = {"createdAt": Task.created_at, "dueDate": Task.due_date}


# -----------------
# Helpers
# -----------------

def _parse_dt(val) -> Optional[datetime]:
    if val in (None, ""):
        return None
    try:
        # Accept both YYYY-MM-DD and full ISO strings (trailing Z included)
        return datetime.fromisoformat(str(val).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        raise InvalidInput("dueDate must be an ISO date")


def _parse_checklist(items) -> list[dict]:
    if not isinstance(items, list):
        raise InvalidInput("todoChecklist must be an array")
    out = []
    for it in items:
        if not isinstance(it, dict) or not str(it.get("text") or "").strip():
            raise InvalidInput("Each checklist item needs a text")
        out.append({"text": str(it["text"]).strip(), "completed": bool(it.get("completed"))})
    return out


def _parse_priority(val) -> str:
    if val not in PRIORITIES:
        raise InvalidInput("priority must be one of Low, Medium, High")
    return val


def _ensure_users_exist(user_ids: list[int]):
    if not user_ids:
        return
    found = {uid for (uid,) in db.session.query(User.id).filter(User.id.in_(user_ids))}
    missing = [uid for uid in user_ids if uid not in found]
    if missing:
        raise NotFound("One or more assigned users not found", {"missingUsers": missing})


def _apply_location(task: Task, loc):
    if not isinstance(loc, dict):
        return
    lat, lng, address = loc.get("lat"), loc.get("lng"), loc.get("address")
    if isinstance(lat, (int, float)) and not isinstance(lat, bool):
        task.location_lat = float(lat)
    if isinstance(lng, (int, float)) and not isinstance(lng, bool):
        task.location_lng = float(lng)
    if isinstance(address, str):
        task.location_address = address


def _ensure_can_work_on(task: Task, user: User):
    if not task.is_assigned(user.id) and not user.is_admin:
        raise Forbidden("You are not authorized to update this task")


def serialize_task(task: Task, requests=None) -> dict:
    """Task payload with the annotated assignee list (display only)."""
    if requests is None:
        requests = requests_for(task)
    assigned = [a.user.summary() for a in task.assignees]
    extra_ids = missing_candidate_ids(task.assigned_to_ids, requests)
    extra = {}
    if extra_ids:
        extra = {u.id: u.summary() for u in User.query.filter(User.id.in_(extra_ids)).all()}
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "dueDate": task.due_date.isoformat() if task.due_date else None,
        "status": task.status,
        "progress": task.progress,
        "todoChecklist": [it.to_dict() for it in task.checklist],
        "completedTodoCount": sum(1 for it in task.checklist if it.completed),
        "attachments": list(task.attachments or []),
        "location": task.location,
        "createdBy": task.created_by_id,
        "createdAt": task.created_at.isoformat() if task.created_at else None,
        "updatedAt": task.updated_at.isoformat() if task.updated_at else None,
        "assignedTo": present_assignees(assigned, requests, extra),
    }


def _resolve_for_read(task: Task) -> dict:
    requests = requests_for(task)
    reconcile_task(task, requests)
    return serialize_task(task, requests)


# -----------------
# Create / read
# -----------------

def create_task(admin: User, payload: dict) -> tuple[Task, bool]:
    """Create a task; overloaded candidates get a Pending request instead of a seat.

    Returns the task and whether any assignment request was created.
    """
    title = (payload.get("title") or "").strip()
    if not title:
        raise InvalidInput("Title is required")
    priority = _parse_priority(payload.get("priority") or "Medium")
    candidates = validate_user_ids(payload.get("assignedTo"), "assignedTo")
    _ensure_users_exist(candidates)
    checklist = _parse_checklist(payload.get("todoChecklist") or [])
    attachments = payload.get("attachments") or []
    if not isinstance(attachments, list):
        raise InvalidInput("attachments must be an array")

    direct, overloaded = partition_candidates(candidates)

    task = Task(
        title=title,
        description=payload.get("description"),
        priority=priority,
        due_date=_parse_dt(payload.get("dueDate")),
        attachments=attachments,
        created_by_id=admin.id,
    )
    _apply_location(task, payload.get("location"))
    task.replace_checklist(checklist)
    for uid in direct:
        task.add_assignee(uid, source=SOURCE_DIRECT)
    db.session.add(task)
    db.session.flush()

    for uid in overloaded:
        create_request(task.id, uid, admin.id, commit=False)

    apply_checklist_status(task)
    db.session.commit()
    log.info("Task %s created by %s: direct=%s pending_approval=%s", task.id, admin.id, direct, overloaded)
    return task, bool(overloaded)


def get_task(user: User, task_id: int) -> dict:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    data = _resolve_for_read(task)
    db.session.commit()
    return data


def _visible_tasks(user: User, status=None, assigned_to=None, search=None):
    qry = Task.query
    if status and status != "All":
        qry = qry.filter(Task.status == status)
    if assigned_to:
        qry = qry.filter(Task.assignees.any(TaskAssignee.user_id == assigned_to))
    if search:
        qry = qry.filter(Task.title.ilike(f"%{search}%"))
    if not user.is_admin:
        qry = qry.filter(Task.assignees.any(TaskAssignee.user_id == user.id))
    return qry


def get_tasks(user: User, status=None, sort_by="createdAt", sort_order="desc",
              assigned_to=None, search=None, page: int = 1, per_page: Optional[int] = None) -> dict:
    qry = _visible_tasks(user, status=status, assigned_to=assigned_to, search=search)

    counts = dict(
        qry.with_entities(Task.status, func.count(Task.id)).group_by(Task.status).all()
    )
    summary = {
        "all": sum(counts.values()),
        "pendingTasks": counts.get(STATUS_PENDING, 0),
        "inProgressTasks": counts.get(STATUS_IN_PROGRESS, 0),
        "completedTasks": counts.get(STATUS_COMPLETED, 0),
    }

    column = SORT_FIELDS.get(sort_by, Task.created_at)
    if sort_order == "asc":
        ordering = (column.asc(), Task.id.asc())
    else:
        ordering = (column.desc(), Task.id.desc())
    per_page = per_page or current_app.config.get("TASKS_PER_PAGE", 50)
    pager = qry.order_by(*ordering).paginate(page=max(page, 1), per_page=per_page, error_out=False)

    tasks = [_resolve_for_read(t) for t in pager.items]
    db.session.commit()
    return {
        "tasks": tasks,
        "statusSummary": summary,
        "pagination": {"page": pager.page, "perPage": pager.per_page, "total": pager.total, "pages": pager.pages},
    }


# -----------------
# Update / delete
# -----------------

def _replace_assignees(task: Task, user_ids: list[int]):
    """New list order wins; users already on the task keep their provenance."""
    current = {a.user_id: a for a in task.assignees}
    rows = []
    for pos, uid in enumerate(dict.fromkeys(user_ids)):
        row = current.get(uid) or TaskAssignee(user_id=uid, source=SOURCE_DIRECT)
        row.position = pos
        rows.append(row)
    task.assignees = rows


def update_task(admin: User, task_id: int, payload: dict) -> Task:
    task = lock_task(task_id)
    assignees_changed = checklist_changed = False

    if payload.get("assignedTo") is not None:
        user_ids = validate_user_ids(payload["assignedTo"], "assignedTo")
        _ensure_users_exist(user_ids)
        _replace_assignees(task, user_ids)
        assignees_changed = True

    if payload.get("title"):
        task.title = str(payload["title"]).strip() or task.title
    if payload.get("description"):
        task.description = payload["description"]
    if payload.get("priority"):
        task.priority = _parse_priority(payload["priority"])
    if payload.get("dueDate"):
        task.due_date = _parse_dt(payload["dueDate"])
    if payload.get("todoChecklist") is not None:
        task.replace_checklist(_parse_checklist(payload["todoChecklist"]))
        checklist_changed = True
    if payload.get("attachments") is not None:
        if not isinstance(payload["attachments"], list):
            raise InvalidInput("attachments must be an array")
        task.attachments = payload["attachments"]
    _apply_location(task, payload.get("location"))

    db.session.flush()
    if checklist_changed:
        apply_checklist_status(task)
    else:
        # a manually set status survives an assignee edit
        if assignees_changed:
            task.progress = checklist_progress(task.checklist)
        apply_resolved_status(task)
    db.session.commit()
    log.info("Task %s updated by %s", task.id, admin.id)
    return task


def delete_task(admin: User, task_id: int):
    task = lock_task(task_id)
    db.session.delete(task)
    db.session.commit()
    log.info("Task %s deleted by %s", task_id, admin.id)


def update_task_status(user: User, task_id: int, status: Optional[str]) -> Task:
    task = lock_task(task_id)
    _ensure_can_work_on(task, user)

    if status:
        if status not in TASK_STATUSES:
            raise InvalidInput("Invalid status", {"allowed": list(TASK_STATUSES)})
        task.status = status

    if task.status == STATUS_COMPLETED:
        for item in task.checklist:
            item.completed = True
    task.progress = checklist_progress(task.checklist)

    apply_resolved_status(task)
    db.session.commit()
    return task


def update_task_checklist(user: User, task_id: int, items) -> Task:
    task = lock_task(task_id)
    _ensure_can_work_on(task, user)
    checklist = _parse_checklist(items)

    requests = requests_for(task)
    if resolved_status(task, requests) == STATUS_REJECTED:
        raise Forbidden("Cannot update checklist of a rejected task")

    task.replace_checklist(checklist)
    db.session.flush()
    apply_checklist_status(task, requests)
    db.session.commit()
    return task
