# taskboard/services/assignment_workflow.py
from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..errors import Conflict, Forbidden, InvalidInput, NotFound
from ..models.assignment import (
    AssignmentRequest,
    REQUEST_APPROVED,
    REQUEST_PENDING,
    REQUEST_REJECTED,
)
from ..models.task import SOURCE_REQUEST
from ..models.user import User
from .status_resolver import status_after_reject
from .task_state import apply_resolved_status, direct_ids, lock_task, requests_for

log = logging.getLogger(__name__)

ACTIONS = ("approve", "reject")


def create_request(task_id: int, candidate_id: int, admin_id: int, commit: bool = True) -> AssignmentRequest:
    task = lock_task(task_id)
    if db.session.get(User, candidate_id) is None:
        raise NotFound("User not found", {"userId": candidate_id})

    existing = AssignmentRequest.query.filter_by(
        task_id=task.id, assigned_to_user_id=candidate_id, status=REQUEST_PENDING
    ).first()
    if existing:
        raise Conflict("Pending assignment request already exists", {"requestId": existing.id})

    req = AssignmentRequest(
        task_id=task.id,
        assigned_by_admin_id=admin_id,
        assigned_to_user_id=candidate_id,
        status=REQUEST_PENDING,
    )
    db.session.add(req)
    try:
        db.session.flush()
    except IntegrityError:
        # Lost a race with another writer; the partial unique index caught it.
        db.session.rollback()
        raise Conflict("Pending assignment request already exists")

    apply_resolved_status(task)
    if commit:
        db.session.commit()
    log.info("Assignment request %s created: task=%s candidate=%s by=%s", req.id, task.id, candidate_id, admin_id)
    return req


def respond_to_request(request_id: int, responder_id: int, action: str, reason: Optional[str] = None) -> AssignmentRequest:
    req = db.session.get(AssignmentRequest, request_id)
    if req is None:
        raise NotFound("Assignment request not found")
    if req.assigned_to_user_id != responder_id:
        raise Forbidden("Not authorized to respond to this request")
    if action not in ACTIONS:
        raise InvalidInput("Invalid action", {"allowed": list(ACTIONS)})
    if reason is not None and not isinstance(reason, str):
        raise InvalidInput("rejectionReason must be a string")

    task = lock_task(req.task_id)
    req.responded_at = datetime.utcnow()

    if action == "approve":
        req.status = REQUEST_APPROVED
        req.rejection_reason = None
        task.add_assignee(req.assigned_to_user_id, source=SOURCE_REQUEST, request_id=req.id)
        db.session.flush()
        apply_resolved_status(task)
    else:
        req.status = REQUEST_REJECTED
        req.rejection_reason = (reason or "").strip() or None
        db.session.flush()
        task.status = status_after_reject(direct_ids(task), requests_for(task))

    db.session.commit()
    log.info("Assignment request %s %sd by user %s; task %s is now %r",
             req.id, action, responder_id, task.id, task.status)
    return req


def _task_summary(task) -> Optional[dict]:
    if task is None:
        return None
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "dueDate": task.due_date.isoformat() if task.due_date else None,
    }


def serialize_request(req: AssignmentRequest) -> dict:
    data = req.to_dict()
    data["task"] = _task_summary(req.task)
    data["assignedBy"] = req.assigned_by.summary() if req.assigned_by else None
    data["assignedTo"] = req.assigned_to.summary() if req.assigned_to else None
    return data


def list_pending_requests(user_id: Optional[int] = None) -> list[dict]:
    qry = (
        AssignmentRequest.query
        .options(
            joinedload(AssignmentRequest.task),
            joinedload(AssignmentRequest.assigned_by),
            joinedload(AssignmentRequest.assigned_to),
        )
        .filter(AssignmentRequest.status == REQUEST_PENDING)
    )
    if user_id is not None:
        qry = qry.filter(AssignmentRequest.assigned_to_user_id == user_id)
    reqs = qry.order_by(AssignmentRequest.created_at.desc(), AssignmentRequest.id.desc()).all()
    return [serialize_request(r) for r in reqs]
