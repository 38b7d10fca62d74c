# taskboard/security.py
from functools import wraps
from flask_login import current_user
from .errors import Forbidden


def roles_required(*roles):
    """Allow the view only for users whose role is one of ``roles``.

    Stack it under ``@login_required`` so anonymous users get a 401 first.
    """
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if getattr(current_user, "role", None) not in roles:
                raise Forbidden("You are not allowed to perform this action")
            return view(*args, **kwargs)
        return wrapped
    return decorator
