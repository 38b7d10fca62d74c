# taskboard/blueprints/auth/routes.py
import logging
from flask import jsonify
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from ...errors import InvalidInput, Forbidden
from ...models.user import User
from . import auth_bp
from .forms import LoginForm

log = logging.getLogger(__name__)


@auth_bp.get("/csrf")
def csrf_token():
    return jsonify({"csrfToken": generate_csrf()})


@auth_bp.post("/login")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        raise InvalidInput("Invalid login payload", {"fields": form.errors})

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(form.password.data):
        log.info("Failed login for %s", email)
        raise Forbidden("Invalid email or password")

    login_user(user, remember=bool(form.remember.data))
    return jsonify({"message": "Logged in", "user": {**user.summary(), "role": user.role}})


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({**current_user.summary(), "role": current_user.role})
