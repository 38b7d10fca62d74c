# taskboard/blueprints/utils.py
from flask import request
from ..errors import InvalidInput


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def as_int(val, field: str) -> int:
    if isinstance(val, bool):
        raise InvalidInput(f"{field} must be an integer id")
    try:
        return int(val)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be an integer id")
