# Overview: Flask API routes for the onboarding request timeline.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import OnboardingError
from ..models import EventType
from ..services import timeline_service
from ..validation import optional_text
from .common import actor_id, error_response, internal_error, json_payload


timeline_bp = Blueprint("timeline", __name__, url_prefix="/api/onboarding/requests")


@timeline_bp.get("/<int:request_id>/events")
@require_auth
@require_permission("VIEW_ONBOARDING")
def list_events_route(request_id: int):
    """Timeline, newest first. Optional ?event_type= and ?limit=."""
    try:
        raw_type = request.args.get("event_type")
        event_type = EventType.parse(raw_type, field="event_type") if raw_type else None
        limit = min(request.args.get("limit", 200, type=int), 500)
        events = timeline_service.list_events(request_id, event_type=event_type, limit=limit)
        return jsonify({"items": [ev.to_dict() for ev in events], "count": len(events)}), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to list events for onboarding request %s", request_id)


@timeline_bp.post("/<int:request_id>/events")
@require_auth
@require_permission("MANAGE_ONBOARDING")
def add_note_route(request_id: int):
    data = json_payload()
    try:
        message = optional_text(data, "message", max_length=4000)
        ev = timeline_service.add_note(request_id, message, actor_user_id=actor_id())
        return jsonify(ev.to_dict()), 201
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to add note to onboarding request %s", request_id)
