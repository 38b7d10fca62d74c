# taskboard/blueprints/main/routes.py
import json
from datetime import datetime
from flask import current_app, jsonify, request
from ...extensions import db
from . import main_bp


# ---- Tiny JSON health route (DB ping + version) ----
@main_bp.route("/status")
def status():
    ok_db = True
    try:
        db.session.execute(db.text("SELECT 1"))
    except Exception as e:
        current_app.logger.error(f"DB health failed: {e}")
        ok_db = False

    payload = {
        "service": "taskboard",
        "version": current_app.config.get("APP_VERSION"),
        "time_utc": datetime.utcnow().isoformat() + "Z",
        "checks": {"database": "ok" if ok_db else "fail"},
    }
    code = 200 if ok_db else 503

    # ?pretty=1 -> pretty JSON
    if request.args.get("pretty"):
        return current_app.response_class(
            json.dumps(payload, indent=2) + "\n",
            mimetype="application/json"
        ), code

    return jsonify(payload), code
