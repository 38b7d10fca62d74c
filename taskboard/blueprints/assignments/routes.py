# taskboard/blueprints/assignments/routes.py
from flask import jsonify
from flask_login import login_required, current_user
from ...security import roles_required
from ...services import assignment_workflow as workflow
from ...services.overload import find_overloaded_users
from ..utils import as_int, json_body
from . import assignments_bp


@assignments_bp.post("")
@login_required
@roles_required("admin")
def request_create():
    data = json_body()
    req = workflow.create_request(
        as_int(data.get("taskId"), "taskId"),
        as_int(data.get("assignedToUserId"), "assignedToUserId"),
        current_user.id,
    )
    return jsonify({"message": "Task assignment request created", "request": workflow.serialize_request(req)}), 201


@assignments_bp.get("")
@login_required
@roles_required("admin")
def request_list_all():
    return jsonify({"requests": workflow.list_pending_requests()})


@assignments_bp.get("/mine")
@login_required
def request_list_mine():
    return jsonify({"requests": workflow.list_pending_requests(current_user.id)})


@assignments_bp.post("/<int:request_id>/respond")
@login_required
def request_respond(request_id):
    data = json_body()
    action = data.get("action")
    req = workflow.respond_to_request(request_id, current_user.id, action, data.get("rejectionReason"))
    verb = "approved" if action == "approve" else "rejected"
    return jsonify({"message": f"Assignment request {verb}", "request": workflow.serialize_request(req)})


@assignments_bp.post("/check-overload")
@login_required
@roles_required("admin")
def check_overload():
    return jsonify({"users": find_overloaded_users(json_body().get("userIds"))})
