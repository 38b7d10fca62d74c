# taskboard/services/status_resolver.py
"""
Effective task status.

A task's stored ``status`` is only a cache. The functions here derive the
authoritative value from three inputs that change independently of each
other: the checklist, the ordered assignee list and the assignment requests
filed for the task. Nothing in this module touches the database; callers pass
model rows or any objects exposing the same attributes.
"""
from __future__ import annotations

import math
from typing import Iterable, Optional

from ..models.assignment import REQUEST_APPROVED, REQUEST_PENDING, REQUEST_REJECTED
from ..models.task import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    STATUS_PENDING_APPROVAL,
    STATUS_REJECTED,
)


# ---- checklist ----

def checklist_progress(items) -> int:
    """Percentage of completed checklist items, rounded half up. 0 when empty."""
    items = list(items)
    if not items:
        return 0
    done = sum(1 for it in items if it.completed)
    return int(math.floor(100 * done / len(items) + 0.5))


def status_from_progress(progress: int) -> str:
    if progress >= 100:
        return STATUS_COMPLETED
    if progress > 0:
        return STATUS_IN_PROGRESS
    return STATUS_PENDING


# ---- requests ----

def latest_requests_by_user(requests) -> dict:
    """One request per candidate; a later request (higher id) wins."""
    out = {}
    for r in sorted(requests, key=lambda r: (r.id is None, r.id or 0)):
        out[r.assigned_to_user_id] = r
    return out


def _status_of(by_user: dict, user_id) -> Optional[str]:
    r = by_user.get(user_id)
    return r.status if r is not None else None


def resolve_status(current_status: str, checklist, assigned_ids: list, requests) -> str:
    """Effective status, first matching rule wins.

    1. every assigned user (or the only one) holds a Rejected request -> Rejected
    2. any candidate still Pending                                     -> Pending Approval
    3. any Approved request: checklist done / started / untouched      -> Completed / In Progress / Pending
    4. otherwise the stored, checklist-driven value stands
    """
    by_user = latest_requests_by_user(requests)
    assigned_ids = list(assigned_ids)

    all_rejected = bool(assigned_ids) and all(
        _status_of(by_user, uid) == REQUEST_REJECTED for uid in assigned_ids
    )
    single_user_rejected = (
        len(assigned_ids) == 1 and _status_of(by_user, assigned_ids[0]) == REQUEST_REJECTED
    )
    if all_rejected or single_user_rejected:
        return STATUS_REJECTED

    states = {r.status for r in by_user.values()}
    if REQUEST_PENDING in states:
        return STATUS_PENDING_APPROVAL

    if REQUEST_APPROVED in states:
        checklist = list(checklist)
        done = [it.completed for it in checklist]
        if done and all(done):
            return STATUS_COMPLETED
        if any(done):
            return STATUS_IN_PROGRESS
        return STATUS_PENDING

    return current_status


def status_after_reject(direct_ids: Iterable, requests) -> str:
    """Task status written right after a candidate rejects.

    Narrower than ``resolve_status``: checklist progress is ignored and users
    assigned directly (not through a request) always count as approved.
    """
    requests = list(requests)
    direct_count = len(list(direct_ids))
    approved = sum(1 for r in requests if r.status == REQUEST_APPROVED)
    pending = sum(1 for r in requests if r.status == REQUEST_PENDING)
    rejected = sum(1 for r in requests if r.status == REQUEST_REJECTED)

    if rejected == len(requests) and direct_count == 0:
        return STATUS_REJECTED
    if pending > 0:
        return STATUS_PENDING_APPROVAL
    if approved + direct_count > 0:
        return STATUS_PENDING
    return STATUS_PENDING_APPROVAL


def fully_rejected(direct_ids: Iterable, requests) -> bool:
    """True when the task has requests, all of them Rejected, and nobody assigned directly."""
    requests = list(requests)
    return bool(requests) and not list(direct_ids) and all(
        r.status == REQUEST_REJECTED for r in requests
    )


# ---- presentation ----

def missing_candidate_ids(assigned_ids, requests) -> list:
    """Candidates with a Pending/Rejected request who are not in the stored assignee list."""
    assigned = set(assigned_ids)
    return [
        uid for uid, r in latest_requests_by_user(requests).items()
        if r.status in (REQUEST_PENDING, REQUEST_REJECTED) and uid not in assigned
    ]


def _annotate(summary: dict, req) -> dict:
    status = req.status if req is not None else None
    return {
        **summary,
        "rejected": status == REQUEST_REJECTED,
        "pending": status == REQUEST_PENDING,
        "rejectionReason": (req.rejection_reason if req is not None else None) or None,
    }


def present_assignees(assigned: list, requests, extra_users: dict) -> list:
    """Display list of assignees.

    ``assigned`` is the stored list as user summaries (dicts with ``id``);
    ``extra_users`` maps candidate ids from ``missing_candidate_ids`` to their
    summaries. Display only, never persisted.
    """
    by_user = latest_requests_by_user(requests)
    out = [_annotate(u, by_user.get(u["id"])) for u in assigned]
    assigned_ids = [u["id"] for u in assigned]
    for uid in missing_candidate_ids(assigned_ids, requests):
        summary = extra_users.get(uid)
        if summary is None:
            continue
        out.append(_annotate(summary, by_user[uid]))
    return out
