# Overview: Flask API routes for onboarding shipments.

from flask import Blueprint, jsonify

from ..decorators import require_auth, require_permission
from ..errors import OnboardingError
from ..models import ShipmentStatus
from ..services import shipment_service
from ..validation import optional_text
from .common import actor_id, error_response, internal_error, json_payload


shipments_bp = Blueprint("shipments", __name__, url_prefix="/api/onboarding/requests")


@shipments_bp.get("/<int:request_id>/shipments")
@require_auth
@require_permission("VIEW_ONBOARDING")
def list_shipments_route(request_id: int):
    try:
        shipments = shipment_service.list_shipments(request_id)
        return jsonify({
            "items": [s.to_dict() for s in shipments],
            "count": len(shipments),
            "badge": shipment_service.shipping_badge(shipments),
        }), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to list shipments for onboarding request %s", request_id)


@shipments_bp.post("/<int:request_id>/shipments")
@require_auth
@require_permission("MANAGE_SHIPMENTS")
def create_shipment_route(request_id: int):
    data = json_payload()
    try:
        raw_status = data.get("status")
        shipment = shipment_service.create_shipment(
            request_id,
            carrier=optional_text(data, "carrier", max_length=64),
            tracking_number=optional_text(data, "tracking_number", max_length=128),
            ship_to_address=optional_text(data, "ship_to_address", max_length=512),
            status=ShipmentStatus.parse(raw_status, field="status") if raw_status is not None else ShipmentStatus.CREATED,
            actor_user_id=actor_id(),
        )
        return jsonify(shipment.to_dict()), 201
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create shipment for onboarding request %s", request_id)


@shipments_bp.post("/<int:request_id>/shipments/<int:shipment_id>/status")
@require_auth
@require_permission("MANAGE_SHIPMENTS")
def update_shipment_status_route(request_id: int, shipment_id: int):
    """Body: {"status": "PACKED"|"SHIPPED"|"DELIVERED", "tracking_number": ...}"""
    data = json_payload()
    try:
        shipment = shipment_service.update_shipment_status(
            request_id,
            shipment_id,
            ShipmentStatus.parse(data.get("status"), field="status"),
            tracking_number=optional_text(data, "tracking_number", max_length=128),
            actor_user_id=actor_id(),
        )
        return jsonify(shipment.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to update shipment %s", shipment_id)
