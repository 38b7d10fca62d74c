# tests/test_status_resolver.py

from __future__ import annotations

import pytest

from taskboard.services.status_resolver import (
    checklist_progress,
    latest_requests_by_user,
    missing_candidate_ids,
    present_assignees,
    resolve_status,
    status_after_reject,
    status_from_progress,
)

from .helpers import item, req


@pytest.mark.parametrize(
    "flags, expected",
    [
        ([], 0),
        ([False, False], 0),
        ([True, False], 50),
        ([True, False, False], 33),
        ([True, True, False], 67),
        ([True] + [False] * 7, 13),  # 12.5 rounds half up
        ([True, True], 100),
    ],
)
def test_checklist_progress(flags, expected):
    assert checklist_progress([item(f) for f in flags]) == expected


def test_status_from_progress():
    assert status_from_progress(0) == "Pending"
    assert status_from_progress(1) == "In Progress"
    assert status_from_progress(99) == "In Progress"
    assert status_from_progress(100) == "Completed"


def test_latest_request_per_user_wins_by_id():
    reqs = [req(7, "Rejected", rid=1), req(7, "Pending", rid=3), req(8, "Approved", rid=2)]
    by_user = latest_requests_by_user(reqs)
    assert by_user[7].status == "Pending"
    assert by_user[8].status == "Approved"


class TestResolveStatus:
    def test_single_assignee_rejected_beats_checklist(self):
        checklist = [item(True), item(True)]
        assert resolve_status("Completed", checklist, [1], [req(1, "Rejected", 1)]) == "Rejected"

    def test_all_assignees_rejected(self):
        reqs = [req(1, "Rejected", 1), req(2, "Rejected", 2)]
        assert resolve_status("Pending", [], [1, 2], reqs) == "Rejected"

    def test_direct_assignee_prevents_rejected(self):
        # user 3 has no request: assigned directly
        reqs = [req(1, "Rejected", 1), req(2, "Rejected", 2)]
        assert resolve_status("Pending", [], [1, 2, 3], reqs) == "Pending"

    def test_pending_request_means_pending_approval(self):
        reqs = [req(2, "Pending", 1)]
        assert resolve_status("In Progress", [item(True)], [1], reqs) == "Pending Approval"

    def test_approved_and_half_done_is_in_progress(self):
        reqs = [req(1, "Approved", 1)]
        assert resolve_status("Pending", [item(True), item(False)], [1], reqs) == "In Progress"

    def test_approved_and_all_done_is_completed(self):
        reqs = [req(1, "Approved", 1)]
        assert resolve_status("Pending", [item(True), item(True)], [1], reqs) == "Completed"

    def test_approved_with_empty_checklist_is_pending(self):
        reqs = [req(1, "Approved", 1)]
        assert resolve_status("Completed", [], [1], reqs) == "Pending"

    def test_no_requests_keeps_stored_status(self):
        assert resolve_status("In Progress", [item(True), item(False)], [1, 2], []) == "In Progress"

    def test_unassigned_task_without_requests_keeps_stored_status(self):
        assert resolve_status("Pending", [], [], []) == "Pending"


class TestStatusAfterReject:
    def test_only_request_rejected_no_direct(self):
        assert status_after_reject([], [req(1, "Rejected", 1)]) == "Rejected"

    def test_all_rejected_with_direct_assignee(self):
        assert status_after_reject([5], [req(1, "Rejected", 1), req(2, "Rejected", 2)]) == "Pending"

    def test_other_request_still_pending(self):
        assert status_after_reject([], [req(1, "Rejected", 1), req(2, "Pending", 2)]) == "Pending Approval"

    def test_mixed_approved_and_rejected(self):
        assert status_after_reject([], [req(1, "Rejected", 1), req(2, "Approved", 2)]) == "Pending"


class TestPresentation:
    def test_missing_candidates_are_pending_or_rejected_only(self):
        reqs = [req(2, "Pending", 1), req(3, "Rejected", 2), req(4, "Approved", 3), req(1, "Rejected", 4)]
        assert sorted(missing_candidate_ids([1], reqs)) == [2, 3]

    def test_present_assignees_annotates_and_extends(self):
        reqs = [req(2, "Rejected", 1, reason="too busy"), req(3, "Pending", 2)]
        assigned = [{"id": 1, "name": "Direct"}]
        extra = {2: {"id": 2, "name": "Busy"}, 3: {"id": 3, "name": "Waiting"}}

        out = present_assignees(assigned, reqs, extra)

        assert [u["id"] for u in out] == [1, 2, 3]
        assert out[0] == {"id": 1, "name": "Direct", "rejected": False, "pending": False, "rejectionReason": None}
        assert out[1]["rejected"] is True and out[1]["rejectionReason"] == "too busy"
        assert out[2]["pending"] is True and out[2]["rejected"] is False

    def test_present_assignees_skips_unknown_extra_users(self):
        out = present_assignees([], [req(9, "Pending", 1)], {})
        assert out == []
