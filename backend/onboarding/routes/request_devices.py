# Overview: Flask API routes for onboarding device assignment.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import OnboardingError
from ..services import device_service
from ..services.device_service import DeviceDescriptor
from ..validation import optional_int, optional_text
from .common import actor_id, error_response, internal_error, json_payload


request_devices_bp = Blueprint("request_devices", __name__, url_prefix="/api/onboarding/requests")


@request_devices_bp.get("/<int:request_id>/devices")
@require_auth
@require_permission("VIEW_ONBOARDING")
def list_devices_route(request_id: int):
    include_removed = request.args.get("include_removed", "true").lower() != "false"
    try:
        devices = device_service.list_devices(request_id, include_removed=include_removed)
        return jsonify({
            "items": [dev.to_dict() for dev in devices],
            "count": len(devices),
            "badge": device_service.devices_badge(devices),
        }), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to list devices for onboarding request %s", request_id)


@request_devices_bp.post("/<int:request_id>/devices/assign")
@require_auth
@require_permission("MANAGE_DEVICES")
def assign_device_route(request_id: int):
    """
    Assign a device.

    Body: {"device_type", "model", "serial_number", "network_address",
           "request_location_id"}; model or serial_number is required.
    """
    data = json_payload()
    try:
        device = device_service.assign_device(
            request_id,
            DeviceDescriptor.from_payload(data),
            request_location_id=optional_int(data, "request_location_id", minimum=1),
            actor_user_id=actor_id(),
        )
        return jsonify(device.to_dict()), 201
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to assign device to onboarding request %s", request_id)


@request_devices_bp.post("/<int:request_id>/devices/<int:device_id>/remove")
@require_auth
@require_permission("MANAGE_DEVICES")
def remove_device_route(request_id: int, device_id: int):
    data = json_payload()
    try:
        device = device_service.remove_device(
            request_id,
            device_id,
            actor_user_id=actor_id(),
            reason=optional_text(data, "reason", max_length=1000),
        )
        return jsonify(device.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to remove device %s", device_id)
