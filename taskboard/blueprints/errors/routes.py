# taskboard/blueprints/errors/routes.py
import logging
from flask import jsonify
from werkzeug.exceptions import HTTPException
from flask_wtf.csrf import CSRFError
from ...extensions import db
from ...errors import TaskboardError
from . import errors_bp

log = logging.getLogger(__name__)


# NotFound / Forbidden / Conflict / InvalidInput raised by the services
@errors_bp.app_errorhandler(TaskboardError)
def err_domain(e: TaskboardError):
    db.session.rollback()
    return jsonify(e.to_dict()), e.code

# CSRF – typically treated as 400 Bad Request
@errors_bp.app_errorhandler(CSRFError)
def err_csrf(e):
    return jsonify({"message": e.description, "error": "InvalidInput"}), 400

# Fallback for HTTPException (401 from login_required, 404 unknown route, 405...)
@errors_bp.app_errorhandler(HTTPException)
def err_http(e: HTTPException):
    return jsonify({"message": e.description, "error": e.name}), e.code

# Last-resort: any other Exception
@errors_bp.app_errorhandler(Exception)
def err_unexpected(e):
    # if a DB action caused this, rollback so app isn't stuck in bad transaction
    try:
        db.session.rollback()
    except Exception:
        log.exception("Rollback after unexpected error failed")
    log.exception("Unhandled error: %s", e)
    # Don't leak internals
    return jsonify({"message": "Server error", "error": "Internal"}), 500
