# Overview: Shared helpers for onboarding routes; error mapping and payload access.

from flask import current_app, g, jsonify, request

from ..errors import OnboardingError
from ..extensions import db


def json_payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def actor_id() -> int | None:
    user = getattr(g, "current_user", None)
    return user.id if user is not None else None


def error_response(exc: OnboardingError):
    """Roll back and answer with the error's JSON body and HTTP status."""
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.http_status


def internal_error(message: str, *args):
    db.session.rollback()
    current_app.logger.exception(message, *args)
    return jsonify({"error": "Internal server error"}), 500
