# Overview: Device assignment ledger; terminals attached to a request.

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidArgument, InvalidTransition, NotFound
from ..extensions import db
from ..models import (
    AssignmentStatus,
    DeviceType,
    EventType,
    RequestDevice,
    RequestLocation,
)
from ..time_utils import utcnow
from ..validation import optional_text
from .request_access import get_child, get_request, require_mutable
from .timeline_service import append_event


@dataclass(frozen=True)
class DeviceDescriptor:
    device_type: DeviceType = DeviceType.TERMINAL
    model: str | None = None
    serial_number: str | None = None
    network_address: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "DeviceDescriptor":
        device_type = data.get("device_type")
        descriptor = cls(
            device_type=DeviceType.parse(device_type, field="device_type")
            if device_type is not None else DeviceType.TERMINAL,
            model=optional_text(data, "model", max_length=128),
            serial_number=optional_text(data, "serial_number", max_length=128),
            network_address=optional_text(data, "network_address", max_length=64),
        )
        if not (descriptor.model or descriptor.serial_number):
            raise InvalidArgument("model or serial_number is required")
        return descriptor

    def describe(self) -> str:
        parts = [self.device_type.label]
        if self.model:
            parts.append(self.model)
        if self.serial_number:
            parts.append(f"S/N {self.serial_number}")
        return " ".join(parts)


def devices_satisfied(devices: list[RequestDevice]) -> bool:
    return any(dev.assignment_status is not AssignmentStatus.REMOVED for dev in devices)


def device_issues(devices: list[RequestDevice]) -> list[dict]:
    if devices_satisfied(devices):
        return []
    return [{
        "code": "NO_ACTIVE_DEVICE",
        "guard": "devices",
        "entity_type": "device",
        "entity_id": None,
        "message": "At least one device must be assigned",
    }]


def devices_badge(devices: list[RequestDevice], *, expected: int | None = None) -> str:
    """Queue badge: assigned, partial (fewer than requested), or pending."""
    active = sum(1 for d in devices if d.assignment_status is not AssignmentStatus.REMOVED)
    if active == 0:
        return "pending"
    if expected and active < expected:
        return "partial"
    return "assigned"


def assign_device(
    request_id: int,
    descriptor: DeviceDescriptor,
    *,
    request_location_id: int | None = None,
    actor_user_id: int | None = None,
) -> RequestDevice:
    """
    Assign a device to a request, optionally pinned to one of its locations.

    Devices are written straight to ASSIGNED; RESERVED is never produced here.
    """
    req = get_request(request_id)
    require_mutable(req)

    location = None
    if request_location_id is not None:
        location = db.session.get(RequestLocation, request_location_id)
        if location is None or location.request_id != req.id:
            raise NotFound(f"Request location {request_location_id} not found")

    now = utcnow()
    device = RequestDevice(
        request_id=req.id,
        request_location_id=request_location_id,
        device_type=descriptor.device_type,
        model=descriptor.model,
        serial_number=descriptor.serial_number,
        network_address=descriptor.network_address,
        assignment_status=AssignmentStatus.ASSIGNED,
        assigned_by_user_id=actor_user_id,
        assigned_at=now,
    )
    db.session.add(device)
    db.session.flush()

    message = f"{descriptor.describe()} assigned"
    if location is not None:
        message += f" to {location.name}"

    append_event(
        request_id=req.id,
        event_type=EventType.DEVICE_ASSIGNED,
        message=message,
        actor_user_id=actor_user_id,
        occurred_at=now,
    )
    db.session.commit()
    return device


def remove_device(
    request_id: int,
    device_id: int,
    *,
    actor_user_id: int | None = None,
    reason: str | None = None,
) -> RequestDevice:
    req = get_request(request_id)
    require_mutable(req)
    device = get_child(RequestDevice, device_id, req.id, label="Device")

    if device.assignment_status is AssignmentStatus.REMOVED:
        raise InvalidTransition(f"Device {device_id} is already removed")

    now = utcnow()
    device.assignment_status = AssignmentStatus.REMOVED
    device.removed_at = now

    message = f"Device {device.serial_number or device.model or device.id} removed"
    if reason:
        message += f": {reason}"
    append_event(
        request_id=req.id,
        event_type=EventType.NOTE,
        message=message,
        actor_user_id=actor_user_id,
        occurred_at=now,
    )
    db.session.commit()
    return device


def list_devices(request_id: int, *, include_removed: bool = True) -> list[RequestDevice]:
    get_request(request_id)
    q = db.session.query(RequestDevice).filter_by(request_id=request_id)
    if not include_removed:
        q = q.filter(RequestDevice.assignment_status != AssignmentStatus.REMOVED)
    return q.order_by(RequestDevice.id.asc()).all()
