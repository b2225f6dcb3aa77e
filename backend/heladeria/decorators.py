# Overview: Request identity decorator for API routes.

from functools import wraps
from flask import request, jsonify, g


DEFAULT_BRANCH_ID = "1"


def require_session(f):
    """
    Require the caller's identity and expose it on flask.g.

    Authentication itself lives outside this service: the front end (or the
    gateway in front of it) forwards who is acting in headers.

    Sets:
    - g.user_id: X-User-Id (required, 401 when missing)
    - g.branch_id: X-Branch-Id, defaults to branch "1"
    - g.login_session_id: X-Login-Session-Id, may be None
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = (request.headers.get("X-User-Id") or "").strip()
        if not user_id:
            return jsonify({"error": "Authentication required"}), 401

        g.user_id = user_id
        g.branch_id = (request.headers.get("X-Branch-Id") or "").strip() or DEFAULT_BRANCH_ID
        g.login_session_id = (request.headers.get("X-Login-Session-Id") or "").strip() or None

        return f(*args, **kwargs)

    return decorated_function
