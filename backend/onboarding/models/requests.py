from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..time_utils import to_utc_z
from .enums import (
    AssignmentStatus,
    BusinessType,
    DeviceType,
    DocumentStatus,
    DocumentType,
    EventType,
    IntEnumColumn,
    RequestStatus,
    RequestType,
    ShipmentStatus,
)


class OnboardingRequest(db.Model):
    """
    Aggregate root of one onboarding / provisioning case.

    STATE MACHINE:
        SUBMITTED -> IN_REVIEW -> WAITING_DOCS -> APPROVED -> SHIPPED -> ACTIVE
        any non-terminal -> REJECTED

    RULES:
    - status only moves forward along the graph (REJECTED is the one exception)
    - activated_at is set if and only if status is ACTIVE
    - ACTIVE and REJECTED freeze every child collection
    - rows are never deleted; rejected requests stay as history

    CONCURRENCY: version_id is the optimistic lock. Every flush of a status
    change compares and bumps it, so two writers cannot both win.
    """
    __tablename__ = "onboarding_requests"
    __table_args__ = (
        db.Index("ix_onboarding_requests_status_created", "status", "created_at"),
        db.CheckConstraint("status BETWEEN 0 AND 6", name="ck_onboarding_requests_status"),
        db.CheckConstraint(
            "(status = 5 AND activated_at IS NOT NULL) OR (status <> 5 AND activated_at IS NULL)",
            name="ck_onboarding_requests_activated_at",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    request_type = db.Column(IntEnumColumn(RequestType), nullable=False, default=RequestType.NEW_CLIENT)
    business_type = db.Column(IntEnumColumn(BusinessType), nullable=False, default=BusinessType.MULTI_LOCATION_OWNER)
    status = db.Column(IntEnumColumn(RequestStatus), nullable=False, default=RequestStatus.SUBMITTED, index=True)

    business_name = db.Column(db.String(255), nullable=False)
    owner_name = db.Column(db.String(255), nullable=True)
    owner_email = db.Column(db.String(255), nullable=True)
    owner_phone = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Materialized franchise account (weak reference, set once)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)

    # Operator who claimed the request
    assigned_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    submitted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    last_status_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    activated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    organization = db.relationship("Organization", backref=db.backref("onboarding_requests", lazy=True))
    assigned_user = db.relationship("User", foreign_keys=[assigned_user_id])

    locations = db.relationship(
        "RequestLocation", back_populates="request", lazy=True, order_by="RequestLocation.id"
    )
    documents = db.relationship(
        "RequestDocument", back_populates="request", lazy=True, order_by="RequestDocument.id"
    )
    devices = db.relationship(
        "RequestDevice", back_populates="request", lazy=True, order_by="RequestDevice.id"
    )
    shipments = db.relationship(
        "Shipment", back_populates="request", lazy=True, order_by="Shipment.id"
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_frozen(self) -> bool:
        return self.status.is_terminal

    def __repr__(self) -> str:
        return f"<OnboardingRequest id={self.id} status={self.status.name}>"

    def to_dict(self, *, include_children: bool = False) -> dict:
        data = {
            "id": self.id,
            "request_type": self.request_type.name,
            "request_type_label": self.request_type.label,
            "business_type": self.business_type.name,
            "business_type_label": self.business_type.label,
            "status": self.status.name,
            "status_label": self.status.label,
            "business_name": self.business_name,
            "owner_name": self.owner_name,
            "owner_email": self.owner_email,
            "owner_phone": self.owner_phone,
            "notes": self.notes,
            "organization_id": self.organization_id,
            "assigned_user_id": self.assigned_user_id,
            "submitted_by_user_id": self.submitted_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "last_status_at": to_utc_z(self.last_status_at),
            "approved_at": to_utc_z(self.approved_at),
            "activated_at": to_utc_z(self.activated_at),
            "rejected_at": to_utc_z(self.rejected_at),
            "rejection_reason": self.rejection_reason,
            "read_only": self.is_frozen,
            "version_id": self.version_id,
        }
        if include_children:
            data["locations"] = [loc.to_dict() for loc in self.locations]
            data["documents"] = [doc.to_dict() for doc in self.documents]
            data["devices"] = [dev.to_dict() for dev in self.devices]
            data["shipments"] = [s.to_dict() for s in self.shipments]
        return data


@dataclass(frozen=True)
class Pending:
    """Proposed location not yet turned into a Store."""


@dataclass(frozen=True)
class Materialized:
    """Proposed location already backed by a Store row."""
    location_id: int


class RequestLocation(db.Model):
    """
    Proposed physical location under a request.

    location_id is a weak back-reference to the Store created by
    materialization. The Store's lifecycle is independent once created.
    """
    __tablename__ = "request_locations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("onboarding_requests.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    requested_devices_count = db.Column(db.Integer, nullable=True)

    location_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    materialized_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    request = db.relationship("OnboardingRequest", back_populates="locations")
    location = db.relationship("Store")

    @property
    def materialization(self) -> Pending | Materialized:
        if self.location_id is None:
            return Pending()
        return Materialized(location_id=self.location_id)

    def to_dict(self) -> dict:
        state = self.materialization
        return {
            "id": self.id,
            "request_id": self.request_id,
            "name": self.name,
            "address": self.address,
            "requested_devices_count": self.requested_devices_count,
            "location_id": self.location_id,
            "materialized": isinstance(state, Materialized),
            "materialized_at": to_utc_z(self.materialized_at),
            "created_at": to_utc_z(self.created_at),
        }


class RequestDocument(db.Model):
    """
    Required compliance document.

    LIFECYCLE:
        MISSING -> UPLOADED -> VERIFIED
                            -> REJECTED -> UPLOADED (re-upload) -> ...
    There is no REJECTED -> VERIFIED edge.
    """
    __tablename__ = "request_documents"
    __table_args__ = (
        db.Index("ix_request_documents_request_type", "request_id", "doc_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("onboarding_requests.id"), nullable=False, index=True)

    doc_type = db.Column(IntEnumColumn(DocumentType), nullable=False)
    status = db.Column(IntEnumColumn(DocumentStatus), nullable=False, default=DocumentStatus.MISSING)

    file_ref = db.Column(db.String(512), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    uploaded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    uploaded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    verified_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    request = db.relationship("OnboardingRequest", back_populates="documents")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "doc_type": self.doc_type.name,
            "doc_type_label": self.doc_type.label,
            "status": self.status.name,
            "status_label": self.status.label,
            "file_ref": self.file_ref,
            "notes": self.notes,
            "uploaded_by_user_id": self.uploaded_by_user_id,
            "uploaded_at": to_utc_z(self.uploaded_at),
            "verified_by_user_id": self.verified_by_user_id,
            "verified_at": to_utc_z(self.verified_at),
            "created_at": to_utc_z(self.created_at),
        }


class RequestDevice(db.Model):
    """
    Physical terminal assigned to a request (optionally to one of its locations).
    """
    __tablename__ = "request_devices"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("onboarding_requests.id"), nullable=False, index=True)
    request_location_id = db.Column(db.Integer, db.ForeignKey("request_locations.id"), nullable=True, index=True)

    device_type = db.Column(IntEnumColumn(DeviceType), nullable=False, default=DeviceType.TERMINAL)
    model = db.Column(db.String(128), nullable=True)
    serial_number = db.Column(db.String(128), nullable=True, index=True)
    network_address = db.Column(db.String(64), nullable=True)  # IP or MAC

    assignment_status = db.Column(IntEnumColumn(AssignmentStatus), nullable=False, default=AssignmentStatus.ASSIGNED)

    assigned_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=True)
    removed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    request = db.relationship("OnboardingRequest", back_populates="devices")
    request_location = db.relationship("RequestLocation")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "request_location_id": self.request_location_id,
            "device_type": self.device_type.name,
            "device_type_label": self.device_type.label,
            "model": self.model,
            "serial_number": self.serial_number,
            "network_address": self.network_address,
            "assignment_status": self.assignment_status.name,
            "assignment_status_label": self.assignment_status.label,
            "assigned_by_user_id": self.assigned_by_user_id,
            "assigned_at": to_utc_z(self.assigned_at),
            "removed_at": to_utc_z(self.removed_at),
            "created_at": to_utc_z(self.created_at),
        }


class Shipment(db.Model):
    """
    Carrier shipment of hardware for a request.

    LIFECYCLE: CREATED -> PACKED -> SHIPPED -> DELIVERED (forward only).
    ship_to_address is a snapshot taken at creation.
    """
    __tablename__ = "shipments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("onboarding_requests.id"), nullable=False, index=True)

    carrier = db.Column(db.String(64), nullable=True)
    tracking_number = db.Column(db.String(128), nullable=True, index=True)
    status = db.Column(IntEnumColumn(ShipmentStatus), nullable=False, default=ShipmentStatus.CREATED)
    ship_to_address = db.Column(db.String(512), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    request = db.relationship("OnboardingRequest", back_populates="shipments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "carrier": self.carrier,
            "tracking_number": self.tracking_number,
            "status": self.status.name,
            "status_label": self.status.label,
            "ship_to_address": self.ship_to_address,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "shipped_at": to_utc_z(self.shipped_at),
            "delivered_at": to_utc_z(self.delivered_at),
        }


class RequestEvent(db.Model):
    """
    Timeline entry for a request.

    IMMUTABLE: Never update or delete. Append-only for audit integrity;
    survives rejection of the owning request.
    """
    __tablename__ = "request_events"
    __table_args__ = (
        db.Index("ix_request_events_request_created", "request_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("onboarding_requests.id"), nullable=False, index=True)

    event_type = db.Column(IntEnumColumn(EventType), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    actor_label = db.Column(db.String(128), nullable=True)  # snapshot of the actor's name

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    request = db.relationship("OnboardingRequest", backref=db.backref("events", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "event_type": self.event_type.name,
            "event_type_label": self.event_type.label,
            "message": self.message,
            "actor_user_id": self.actor_user_id,
            "actor": self.actor_label,
            "created_at": to_utc_z(self.created_at),
        }
