# taskboard/blueprints/users/routes.py
from flask import jsonify
from flask_login import login_required
from ...security import roles_required
from ...services.reports import users_with_tasks_grouped
from . import users_bp


@users_bp.get("/tasks-grouped")
@login_required
@roles_required("admin")
def tasks_grouped():
    return jsonify({"users": users_with_tasks_grouped()})
