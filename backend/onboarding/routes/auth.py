# Overview: Flask API routes for operator login, logout and identity.

"""
Operator Authentication Routes

Operators are created by administrators (CLI: flask users create).
There is no self-registration.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..permissions import get_role_permissions
from ..services import auth_service
from ..services import session_service
from ..time_utils import to_utc_z
from .common import json_payload


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate an operator and create a session token.

    The token must be sent as "Authorization: Bearer <token>" on protected routes.
    """
    try:
        data = json_payload()
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password, org_id=data.get("org_id"))
        if not user:
            current_app.logger.info("Failed login for %s from %s", username, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        try:
            session, token = session_service.create_session(
                user_id=user.id,
                user_agent=request.headers.get("User-Agent"),
                ip_address=request.remote_addr,
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 403

        return jsonify({
            "user": user.to_dict(),
            "permissions": sorted(get_role_permissions(user.role)),
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
            "org_id": session.org_id,
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1]
    session_service.revoke_session(token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": sorted(g.permissions),
        "org_id": g.org_id,
    }), 200
