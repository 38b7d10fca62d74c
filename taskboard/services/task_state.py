# taskboard/services/task_state.py
"""Keeps ``Task.progress`` and the cached ``Task.status`` in line with their inputs."""
from __future__ import annotations
import logging
from ..extensions import db
from ..errors import NotFound
from ..models.task import Task, STATUS_REJECTED
from ..models.assignment import AssignmentRequest
from .status_resolver import (
    checklist_progress,
    fully_rejected,
    resolve_status,
    status_from_progress,
)

log = logging.getLogger(__name__)


def lock_task(task_id: int) -> Task:
    """Load a task for a read-modify-write cycle.

    Uses SELECT ... FOR UPDATE where the database supports it, so concurrent
    writers on the same task are serialized until the transaction ends.
    """
    task = db.session.get(Task, task_id, with_for_update=True)
    if task is None:
        raise NotFound("Task not found")
    return task


def requests_for(task: Task) -> list[AssignmentRequest]:
    return (
        AssignmentRequest.query
        .filter_by(task_id=task.id)
        .order_by(AssignmentRequest.id.asc())
        .all()
    )


def direct_ids(task: Task) -> list[int]:
    return [a.user_id for a in task.assignees if a.is_direct]


def resolved_status(task: Task, requests=None) -> str:
    if requests is None:
        requests = requests_for(task)
    return resolve_status(task.status, task.checklist, task.assigned_to_ids, requests)


def apply_resolved_status(task: Task, requests=None) -> str:
    task.status = resolved_status(task, requests)
    return task.status


def apply_checklist_status(task: Task, requests=None) -> str:
    """Recompute progress, reset the stored status from it, then resolve.

    A task whose every request was rejected and that has nobody assigned
    directly stays Rejected.
    """
    if requests is None:
        requests = requests_for(task)
    task.progress = checklist_progress(task.checklist)
    if fully_rejected(direct_ids(task), requests):
        task.status = STATUS_REJECTED
    else:
        task.status = status_from_progress(task.progress)
    return apply_resolved_status(task, requests)


def reconcile_task(task: Task, requests=None) -> bool:
    """Repair progress and cached status. Returns True if anything changed."""
    if requests is None:
        requests = requests_for(task)
    progress = checklist_progress(task.checklist)
    status = resolve_status(task.status, task.checklist, task.assigned_to_ids, requests)
    if progress == task.progress and status == task.status:
        return False
    log.info(
        "Task %s repaired: status %r -> %r, progress %s -> %s",
        task.id, task.status, status, task.progress, progress,
    )
    task.progress = progress
    task.status = status
    return True


def reconcile_all() -> int:
    changed = 0
    for task in Task.query.order_by(Task.id.asc()).all():
        if reconcile_task(task):
            changed += 1
    db.session.commit()
    log.info("Reconcile pass finished: %s task(s) updated", changed)
    return changed
