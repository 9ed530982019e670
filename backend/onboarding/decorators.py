# Overview: Bearer-auth and permission decorators for onboarding routes.

"""
Usage:

    @bp.post("/requests/<int:request_id>/activate")
    @require_auth
    @require_permission("ACTIVATE_ACCOUNTS")
    def activate_route(request_id): ...

require_auth populates g.current_user, g.org_id, g.permissions and
g.session_context. Routes that need a finer check mid-handler (force
activation) call has_permission().
"""

from functools import wraps

from flask import current_app, g, jsonify, request

from .services import session_service


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(f):
    """401 unless the request carries a live operator session."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if context is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.org_id = context.org_id
        g.permissions = context.permissions
        g.session_context = context
        return f(*args, **kwargs)

    return wrapper


def has_permission(permission_code: str) -> bool:
    return permission_code in getattr(g, "permissions", frozenset())


def require_permission(permission_code: str):
    """403 unless the operator's role grants permission_code. Stack under @require_auth."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if getattr(g, "session_context", None) is None:
                return jsonify({"error": "Authentication required"}), 401

            if not has_permission(permission_code):
                current_app.logger.warning(
                    "Permission %s denied for user %s on %s %s",
                    permission_code, g.current_user.id, request.method, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return wrapper
    return decorator
