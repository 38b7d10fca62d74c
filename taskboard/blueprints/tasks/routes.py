# taskboard/blueprints/tasks/routes.py
from flask import jsonify, request
from flask_login import login_required, current_user
from ...security import roles_required
from ...services import reports, task_service
from ...services.task_state import reconcile_all
from ..utils import as_int, json_body
from . import tasks_bp


@tasks_bp.get("")
@login_required
def task_list():
    assigned_to = request.args.get("assignedTo")
    result = task_service.get_tasks(
        current_user,
        status=request.args.get("status"),
        sort_by=request.args.get("sortBy", "createdAt"),
        sort_order=request.args.get("sortOrder", "desc"),
        assigned_to=as_int(assigned_to, "assignedTo") if assigned_to else None,
        search=(request.args.get("search") or "").strip() or None,
        page=request.args.get("page", 1, type=int),
        per_page=request.args.get("perPage", type=int),
    )
    return jsonify(result)


@tasks_bp.post("")
@login_required
@roles_required("admin")
def task_create():
    task, requests_created = task_service.create_task(current_user, json_body())
    return jsonify({
        "message": "Task created successfully",
        "task": task_service.serialize_task(task),
        "assignmentRequestsCreated": requests_created,
    }), 201


@tasks_bp.get("/<int:task_id>")
@login_required
def task_detail(task_id):
    return jsonify(task_service.get_task(current_user, task_id))


@tasks_bp.put("/<int:task_id>")
@login_required
@roles_required("admin")
def task_update(task_id):
    task = task_service.update_task(current_user, task_id, json_body())
    return jsonify({"message": "Task updated successfully", "task": task_service.serialize_task(task)})


@tasks_bp.delete("/<int:task_id>")
@login_required
@roles_required("admin")
def task_delete(task_id):
    task_service.delete_task(current_user, task_id)
    return jsonify({"message": "Task deleted successfully"})


@tasks_bp.put("/<int:task_id>/status")
@login_required
def task_set_status(task_id):
    task = task_service.update_task_status(current_user, task_id, json_body().get("status"))
    return jsonify({"message": "Task status updated successfully", "task": task_service.serialize_task(task)})


@tasks_bp.put("/<int:task_id>/todo")
@login_required
def task_set_checklist(task_id):
    task = task_service.update_task_checklist(current_user, task_id, json_body().get("todoChecklist"))
    return jsonify({"message": "Task checklist updated successfully", "task": task_service.serialize_task(task)})


# ---- dashboards ----

@tasks_bp.get("/dashboard-data")
@login_required
@roles_required("admin")
def dashboard_data():
    return jsonify(reports.dashboard())


@tasks_bp.get("/user-dashboard-data")
@login_required
def user_dashboard_data():
    return jsonify(reports.dashboard(current_user.id))


# ---- maintenance ----

@tasks_bp.post("/reconcile")
@login_required
@roles_required("admin")
def reconcile():
    return jsonify({"updated": reconcile_all()})
