from dataclasses import dataclass
from functools import wraps

from flask import current_app, jsonify, session

EXTENSION_KEY = "attendance"


@dataclass
class AttendanceContext:
    """Collaborators built once per app and shared by every request."""

    store: object
    sessions: object  # SessionLifecycleManager
    verifier: object
    insights: object
    users: object  # UserDirectory


def get_context() -> AttendanceContext:
    return current_app.extensions[EXTENSION_KEY]


def current_user():
    user_id = session.get("user_id")
    if not user_id:
        return None
    return get_context().users.get(user_id)


def role_required(role):
    """Pass the logged-in user as `user`; 401 if nobody is logged in, 403 for the wrong role."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify({"success": False, "msg": "Not logged in"}), 401
            if user.role is not role:
                return jsonify({"success": False, "msg": "Unauthorized"}), 403
            return view(*args, user=user, **kwargs)
        return wrapper
    return decorator
