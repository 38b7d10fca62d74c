# taskboard/errors.py
"""Error kinds raised by the service layer.

Each kind maps to one HTTP status in the ``errors`` blueprint. Anything that
is not a ``TaskboardError`` is treated as an internal failure.
"""
from __future__ import annotations
from typing import Optional


class TaskboardError(Exception):
    kind = "Internal"
    code = 500

    def __init__(self, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self) -> dict:
        return {"message": self.message, "error": self.kind, **self.payload}


class NotFound(TaskboardError):
    kind = "NotFound"
    code = 404


class Forbidden(TaskboardError):
    kind = "Forbidden"
    code = 403


class Conflict(TaskboardError):
    kind = "Conflict"
    code = 409


class InvalidInput(TaskboardError):
    kind = "InvalidInput"
    code = 400
