# tests/test_assignment_workflow.py

from __future__ import annotations

import pytest

from taskboard.errors import Conflict, Forbidden, InvalidInput, NotFound
from taskboard.extensions import db
from taskboard.models.assignment import AssignmentRequest
from taskboard.models.task import Task
from taskboard.services import assignment_workflow as workflow
from taskboard.services.task_state import requests_for, resolved_status

from .helpers import get_user


@pytest.fixture()
def people(make_user, admin_id, ctx):
    return {"admin": admin_id, "alice": make_user("Alice"), "bob": make_user("Bob"), "carol": make_user("Carol")}


def _task(seed_task, assignees=()):
    return seed_task(list(assignees), priority="Medium", title="Workflow task")


def test_create_request_leaves_assignees_alone(people, seed_task):
    task = _task(seed_task)
    req = workflow.create_request(task.id, people["alice"], people["admin"])

    assert req.status == "Pending"
    assert req.assigned_by_admin_id == people["admin"]
    assert task.assigned_to_ids == []
    assert task.status == "Pending Approval"


def test_duplicate_pending_request_conflicts(people, seed_task):
    task = _task(seed_task)
    workflow.create_request(task.id, people["alice"], people["admin"])

    with pytest.raises(Conflict):
        workflow.create_request(task.id, people["alice"], people["admin"])


def test_new_request_allowed_after_previous_resolved(people, seed_task):
    task = _task(seed_task)
    first = workflow.create_request(task.id, people["alice"], people["admin"])
    workflow.respond_to_request(first.id, people["alice"], "reject", "busy")

    second = workflow.create_request(task.id, people["alice"], people["admin"])

    assert second.id != first.id
    assert second.status == "Pending"


def test_create_request_unknown_task_or_user(people, seed_task):
    task = _task(seed_task)
    with pytest.raises(NotFound):
        workflow.create_request(9999, people["alice"], people["admin"])
    with pytest.raises(NotFound):
        workflow.create_request(task.id, 9999, people["admin"])


def test_respond_guards(people, seed_task):
    task = _task(seed_task)
    req = workflow.create_request(task.id, people["alice"], people["admin"])

    with pytest.raises(NotFound):
        workflow.respond_to_request(9999, people["alice"], "approve")
    with pytest.raises(Forbidden):
        workflow.respond_to_request(req.id, people["bob"], "approve")
    with pytest.raises(InvalidInput):
        workflow.respond_to_request(req.id, people["alice"], "maybe")
    with pytest.raises(InvalidInput):
        workflow.respond_to_request(req.id, people["alice"], "reject", 5)
    assert db.session.get(AssignmentRequest, req.id).status == "Pending"


def test_approve_appends_candidate_once(people, seed_task):
    task = _task(seed_task, [people["bob"]])
    req = workflow.create_request(task.id, people["alice"], people["admin"])

    workflow.respond_to_request(req.id, people["alice"], "approve")
    workflow.respond_to_request(req.id, people["alice"], "approve")

    task = db.session.get(Task, task.id)
    assert task.assigned_to_ids == [people["bob"], people["alice"]]
    added = task.assignees[-1]
    assert added.source == "request" and added.request_id == req.id
    assert req.status == "Approved"
    assert task.status == "Pending"


def test_reapproval_clears_rejection_reason(people, seed_task):
    task = _task(seed_task)
    req = workflow.create_request(task.id, people["alice"], people["admin"])
    workflow.respond_to_request(req.id, people["alice"], "reject", "on leave")
    assert req.rejection_reason == "on leave"

    workflow.respond_to_request(req.id, people["alice"], "approve")
    assert req.status == "Approved"
    assert req.rejection_reason is None


def test_rejecting_only_request_rejects_task(people, seed_task):
    task = _task(seed_task)
    req = workflow.create_request(task.id, people["alice"], people["admin"])

    workflow.respond_to_request(req.id, people["alice"], "reject", "  ")

    task = db.session.get(Task, task.id)
    assert req.rejection_reason is None
    assert task.status == "Rejected"
    assert task.assigned_to_ids == []
    # the full resolver agrees on the next read
    assert resolved_status(task) == "Rejected"


def test_reject_with_direct_assignee_is_not_rejected(people, seed_task):
    task = _task(seed_task, [people["carol"]])
    r1 = workflow.create_request(task.id, people["alice"], people["admin"])
    r2 = workflow.create_request(task.id, people["bob"], people["admin"])

    workflow.respond_to_request(r1.id, people["alice"], "reject")
    assert db.session.get(Task, task.id).status == "Pending Approval"

    workflow.respond_to_request(r2.id, people["bob"], "reject")
    task = db.session.get(Task, task.id)
    assert task.status == "Pending"
    assert resolved_status(task) == "Pending"


def test_all_requests_rejected_without_direct_assignees(people, seed_task):
    task = _task(seed_task)
    r1 = workflow.create_request(task.id, people["alice"], people["admin"])
    r2 = workflow.create_request(task.id, people["bob"], people["admin"])

    workflow.respond_to_request(r1.id, people["alice"], "approve")
    workflow.respond_to_request(r2.id, people["bob"], "reject")
    assert db.session.get(Task, task.id).status == "Pending"

    # alice changes her mind; every request is now rejected
    workflow.respond_to_request(r1.id, people["alice"], "reject")
    task = db.session.get(Task, task.id)
    assert task.status == "Rejected"
    assert resolved_status(task) == "Rejected"


def test_requests_are_never_deleted(people, seed_task):
    task = _task(seed_task)
    req = workflow.create_request(task.id, people["alice"], people["admin"])
    workflow.respond_to_request(req.id, people["alice"], "reject")
    assert [r.id for r in requests_for(task)] == [req.id]
    assert AssignmentRequest.query.count() == 1


def test_list_pending_requests(people, seed_task):
    task = _task(seed_task)
    workflow.create_request(task.id, people["alice"], people["admin"])
    r2 = workflow.create_request(task.id, people["bob"], people["admin"])
    workflow.respond_to_request(r2.id, people["bob"], "approve")

    mine = workflow.list_pending_requests(people["alice"])
    assert len(mine) == 1
    assert mine[0]["task"]["title"] == "Workflow task"
    assert mine[0]["assignedBy"]["name"] == "Admin"
    assert workflow.list_pending_requests(people["bob"]) == []
    assert len(workflow.list_pending_requests()) == 1
    assert get_user(people["alice"]).name == "Alice"
