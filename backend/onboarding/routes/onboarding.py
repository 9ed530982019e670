# Overview: Flask API routes for onboarding requests; submission, queue, transitions, activation.

"""
Onboarding Request Routes

Request-level operations: submission, the operator queue, claim/approve/reject,
account and location materialization, and activation. Child trackers
(documents, devices, shipments, timeline) have their own blueprints under the
same URL prefix.
"""

from flask import Blueprint, jsonify, request

from ..decorators import has_permission, require_auth, require_permission
from ..errors import InvalidArgument, OnboardingError
from ..models import BusinessType, RequestStatus, RequestType
from ..services import materialization_service, workflow_service
from ..validation import optional_int, optional_text, parse_bool, parse_enum_list, require_text
from .common import actor_id, error_response, internal_error, json_payload


onboarding_bp = Blueprint("onboarding", __name__, url_prefix="/api/onboarding")


def _parse_locations(raw) -> list[dict]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidArgument("locations must be a list")
    locations = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise InvalidArgument(f"locations[{idx}] must be an object")
        locations.append({
            "name": require_text(item, "name", max_length=120),
            "address": optional_text(item, "address"),
            "requested_devices_count": optional_int(item, "requested_devices_count", minimum=0),
        })
    return locations


@onboarding_bp.get("/enums")
@require_auth
@require_permission("VIEW_ONBOARDING")
def enums_route():
    """Integer codes and labels for every persisted onboarding enum."""
    from ..models import enums

    payload = {
        cls.__name__: [member.to_dict() for member in cls]
        for cls in (
            enums.RequestType,
            enums.BusinessType,
            enums.RequestStatus,
            enums.DocumentType,
            enums.DocumentStatus,
            enums.DeviceType,
            enums.AssignmentStatus,
            enums.ShipmentStatus,
            enums.EventType,
        )
    }
    return jsonify(payload), 200


@onboarding_bp.post("/requests")
@require_auth
@require_permission("MANAGE_ONBOARDING")
def create_request_route():
    data = json_payload()
    try:
        request_type = RequestType.parse(data.get("request_type", RequestType.NEW_CLIENT), field="request_type")
        business_type = BusinessType.parse(
            data.get("business_type", BusinessType.MULTI_LOCATION_OWNER), field="business_type"
        )
        organization_id = optional_int(data, "organization_id", minimum=1)
        if request_type is not RequestType.NEW_CLIENT and organization_id is None:
            raise InvalidArgument(f"organization_id is required for {request_type.name} requests")

        req = workflow_service.create_request(
            business_name=require_text(data, "business_name"),
            request_type=request_type,
            business_type=business_type,
            owner_name=optional_text(data, "owner_name"),
            owner_email=optional_text(data, "owner_email"),
            owner_phone=optional_text(data, "owner_phone", max_length=32),
            notes=optional_text(data, "notes", max_length=4000),
            organization_id=organization_id,
            locations=_parse_locations(data.get("locations")),
            actor_user_id=actor_id(),
        )
        return jsonify(req.to_dict(include_children=True)), 201
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create onboarding request")


@onboarding_bp.get("/requests")
@require_auth
@require_permission("VIEW_ONBOARDING")
def list_requests_route():
    try:
        statuses = parse_enum_list(
            RequestStatus,
            [s for s in request.args.get("status", "").split(",") if s.strip()],
            field="status",
        )
        raw_type = request.args.get("request_type")
        request_type = RequestType.parse(raw_type, field="request_type") if raw_type else None
        limit = min(request.args.get("limit", 50, type=int), 200)
        offset = max(request.args.get("offset", 0, type=int), 0)

        rows, total = workflow_service.list_requests(
            statuses=statuses,
            request_type=request_type,
            assigned_user_id=request.args.get("assigned_user_id", type=int),
            search=request.args.get("q"),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "items": [workflow_service.summarize(req) for req in rows],
            "count": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to list onboarding requests")


@onboarding_bp.get("/requests/<int:request_id>")
@require_auth
@require_permission("VIEW_ONBOARDING")
def get_request_route(request_id: int):
    try:
        return jsonify(workflow_service.request_detail(request_id)), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to load onboarding request %s", request_id)


@onboarding_bp.post("/requests/<int:request_id>/claim")
@require_auth
@require_permission("MANAGE_ONBOARDING")
def claim_request_route(request_id: int):
    try:
        req = workflow_service.claim_request(request_id, actor_user_id=actor_id())
        return jsonify(req.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to claim onboarding request %s", request_id)


@onboarding_bp.post("/requests/<int:request_id>/approve")
@require_auth
@require_permission("APPROVE_ONBOARDING")
def approve_request_route(request_id: int):
    data = json_payload()
    try:
        req = workflow_service.approve_request(
            request_id,
            actor_user_id=actor_id(),
            note=optional_text(data, "note", max_length=1000),
        )
        return jsonify(req.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to approve onboarding request %s", request_id)


@onboarding_bp.post("/requests/<int:request_id>/reject")
@require_auth
@require_permission("APPROVE_ONBOARDING")
def reject_request_route(request_id: int):
    data = json_payload()
    try:
        req = workflow_service.reject_request(
            request_id,
            reason=require_text(data, "reason", max_length=1000),
            actor_user_id=actor_id(),
        )
        return jsonify(req.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to reject onboarding request %s", request_id)


@onboarding_bp.post("/requests/<int:request_id>/locations")
@require_auth
@require_permission("MANAGE_ONBOARDING")
def add_location_route(request_id: int):
    data = json_payload()
    try:
        loc = materialization_service.add_location(
            request_id,
            name=require_text(data, "name", max_length=120),
            address=optional_text(data, "address"),
            requested_devices_count=optional_int(data, "requested_devices_count", minimum=0),
            actor_user_id=actor_id(),
        )
        return jsonify(loc.to_dict()), 201
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to add location to onboarding request %s", request_id)


@onboarding_bp.post("/requests/<int:request_id>/account")
@require_auth
@require_permission("MANAGE_ONBOARDING")
def create_account_route(request_id: int):
    data = json_payload()
    try:
        org = materialization_service.materialize_account(
            request_id,
            name=optional_text(data, "name"),
            actor_user_id=actor_id(),
        )
        return jsonify(org.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create account for onboarding request %s", request_id)


@onboarding_bp.post("/requests/<int:request_id>/create-locations")
@require_auth
@require_permission("MANAGE_ONBOARDING")
def create_locations_route(request_id: int):
    try:
        result = materialization_service.materialize_locations(request_id, actor_user_id=actor_id())
        return jsonify(result.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create locations for onboarding request %s", request_id)


@onboarding_bp.get("/requests/<int:request_id>/activation")
@require_auth
@require_permission("VIEW_ONBOARDING")
def activation_preview_route(request_id: int):
    try:
        return jsonify(workflow_service.preview_activation(request_id)), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to evaluate activation for onboarding request %s", request_id)


@onboarding_bp.post("/requests/<int:request_id>/activate")
@require_auth
@require_permission("ACTIVATE_ACCOUNTS")
def activate_route(request_id: int):
    """
    Activate the request.

    Body: {"force": bool}. Forcing skips the guards and needs FORCE_ACTIVATION.
    Blocked activations answer 422 with the full issue list.
    """
    data = json_payload()
    try:
        force = parse_bool(data.get("force"), field="force")
        if force and not has_permission("FORCE_ACTIVATION"):
            return jsonify({
                "error": "Permission denied",
                "required_permission": "FORCE_ACTIVATION",
            }), 403

        result = workflow_service.evaluate_activation(request_id, force=force, actor_user_id=actor_id())
        return jsonify(result.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to activate onboarding request %s", request_id)
