# Overview: Request decorators for API routes (caller identity).

from functools import wraps

from flask import current_app, g, jsonify, request

from .extensions import db
from .models import User
from .services.access_policy import Actor, log_security_event


def require_auth(f):
    """
    Resolve the caller and make it available to the route.

    Authentication itself happens upstream; the authenticating layer puts the
    user id in the configured identity header (IDENTITY_HEADER, default
    X-User-Id). Sets:
    - g.current_user: the active User
    - g.actor: Actor(user_id, role) handed to the sales services

    SECURITY: Returns 401 if:
    - The identity header is missing or not an integer
    - The user does not exist or is deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("IDENTITY_HEADER", "X-User-Id")
        raw = (request.headers.get(header) or "").strip()

        if not raw:
            return jsonify({"error": "Authentication required", "code": "AuthenticationRequired", "details": {}}), 401

        # str.isdigit() also accepts non-ASCII digits that int() rejects
        if not (raw.isascii() and raw.isdigit()):
            return jsonify({"error": "Invalid user identity", "code": "AuthenticationRequired", "details": {}}), 401

        user = db.session.get(User, int(raw))
        if user is None or not user.is_active:
            log_security_event(
                user_id=user.id if user else None,
                event_type="IDENTITY_UNKNOWN",
                success=False,
                resource=request.path,
                action=request.method,
                reason=f"Unknown or inactive user id {raw}",
            )
            return jsonify({"error": "Invalid user identity", "code": "AuthenticationRequired", "details": {}}), 401

        g.current_user = user
        g.actor = Actor.from_user(user)

        return f(*args, **kwargs)

    return decorated_function
