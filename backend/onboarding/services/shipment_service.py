# Overview: Shipment tracker; carrier shipments of hardware for a request.

"""
Shipment Tracker

LIFECYCLE: CREATED -> PACKED -> SHIPPED -> DELIVERED
- Forward only; steps may be skipped (a carrier scan can arrive late)
- shipped_at / delivered_at are stamped when the status first reaches them
- Creating a shipment for an APPROVED request moves it to SHIPPED
- Any shipment short of DELIVERED blocks activation
"""

from __future__ import annotations

from ..errors import InvalidTransition
from ..extensions import db
from ..models import (
    EventType,
    RequestStatus,
    Shipment,
    ShipmentStatus,
)
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .request_access import get_child, get_request, require_mutable
from .timeline_service import append_event


def shipments_satisfied(shipments: list[Shipment]) -> bool:
    return all(s.status is ShipmentStatus.DELIVERED for s in shipments)


def shipment_issues(shipments: list[Shipment]) -> list[dict]:
    return [
        {
            "code": "SHIPMENT_NOT_DELIVERED",
            "guard": "shipments",
            "entity_type": "shipment",
            "entity_id": s.id,
            "message": (
                f"Shipment {s.tracking_number or s.id} is {s.status.label.lower()}, "
                "must be delivered"
            ),
        }
        for s in shipments
        if s.status is not ShipmentStatus.DELIVERED
    ]


def shipping_badge(shipments: list[Shipment]) -> str:
    """Queue badge: shipped (all delivered), in-transit, ready (packed/created), pending (none)."""
    if not shipments:
        return "pending"
    if shipments_satisfied(shipments):
        return "shipped"
    if any(s.status is ShipmentStatus.SHIPPED for s in shipments):
        return "in-transit"
    return "ready"


def _stamp(shipment: Shipment, status: ShipmentStatus, now) -> None:
    shipment.status = status
    if status >= ShipmentStatus.SHIPPED and shipment.shipped_at is None:
        shipment.shipped_at = now
    if status is ShipmentStatus.DELIVERED and shipment.delivered_at is None:
        shipment.delivered_at = now


def create_shipment(
    request_id: int,
    *,
    carrier: str | None = None,
    tracking_number: str | None = None,
    ship_to_address: str | None = None,
    status: ShipmentStatus = ShipmentStatus.CREATED,
    actor_user_id: int | None = None,
) -> Shipment:
    """
    Record a shipment for the request.

    ship_to_address defaults to a snapshot of the first proposed location's
    address. APPROVED requests advance to SHIPPED in the same transaction.
    """
    def _op() -> Shipment:
        req = get_request(request_id, lock=True)
        require_mutable(req)

        address = ship_to_address
        if not address:
            address = next((loc.address for loc in req.locations if loc.address), None)

        now = utcnow()
        shipment = Shipment(
            request_id=req.id,
            carrier=carrier,
            tracking_number=tracking_number,
            ship_to_address=address,
            created_by_user_id=actor_user_id,
        )
        _stamp(shipment, status, now)
        db.session.add(shipment)

        message = "Shipment created"
        if carrier or tracking_number:
            message += f" ({' '.join(p for p in (carrier, tracking_number) if p)})"

        if req.status is RequestStatus.APPROVED:
            req.status = RequestStatus.SHIPPED
            req.last_status_at = now
            message += f"; status {RequestStatus.APPROVED.label} -> {RequestStatus.SHIPPED.label}"

        db.session.flush()
        append_event(
            request_id=req.id,
            event_type=EventType.SHIPMENT_CREATED,
            message=message,
            actor_user_id=actor_user_id,
            occurred_at=now,
        )
        db.session.commit()
        return shipment

    return run_with_retry(_op)


def update_shipment_status(
    request_id: int,
    shipment_id: int,
    status: ShipmentStatus,
    *,
    tracking_number: str | None = None,
    actor_user_id: int | None = None,
) -> Shipment:
    """
    Advance a shipment. Re-sending the current status is a no-op;
    moving backwards raises InvalidTransition.
    """
    req = get_request(request_id)
    require_mutable(req)
    shipment = get_child(Shipment, shipment_id, req.id, label="Shipment")

    if status < shipment.status:
        raise InvalidTransition(
            f"Cannot move shipment {shipment_id} from '{shipment.status.name}' back to '{status.name}'"
        )

    if tracking_number:
        shipment.tracking_number = tracking_number

    if status == shipment.status:
        db.session.commit()
        return shipment

    previous = shipment.status
    now = utcnow()
    _stamp(shipment, status, now)

    append_event(
        request_id=req.id,
        event_type=EventType.NOTE,
        message=(
            f"Shipment {shipment.tracking_number or shipment.id} "
            f"{previous.label.lower()} -> {status.label.lower()}"
        ),
        actor_user_id=actor_user_id,
        occurred_at=now,
    )
    db.session.commit()
    return shipment


def list_shipments(request_id: int) -> list[Shipment]:
    get_request(request_id)
    return (
        db.session.query(Shipment)
        .filter_by(request_id=request_id)
        .order_by(Shipment.id.asc())
        .all()
    )
