# Overview: Workflow engine for onboarding requests; status transitions and activation guards.

"""
Onboarding Workflow Engine

STATE MACHINE:
    SUBMITTED -> IN_REVIEW -> WAITING_DOCS -> APPROVED -> SHIPPED -> ACTIVE
    any non-terminal -> REJECTED
    any non-terminal -> ACTIVE (activation, guarded)

ACTIVATION GUARDS (evaluated in this order, all of them, every time):
    shipments  every Shipment is DELIVERED
    documents  every RequestDocument is VERIFIED
    devices    at least one RequestDevice is not REMOVED
    locations  every RequestLocation is Materialized
    account    the request is linked to an Organization

RULES:
1. Only this module writes request status, except document requests
   (-> WAITING_DOCS) and shipment creation (APPROVED -> SHIPPED)
2. Every status write goes through the version_id compare-and-swap and
   appends its timeline event in the same commit
3. Guards re-read every child table; nothing is cached between calls
4. Activating an ACTIVE request is a successful no-op
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import or_

from ..errors import ActivationBlocked, InvalidArgument, InvalidTransition, RequestFrozen
from ..extensions import db
from ..models import (
    BusinessType,
    EventType,
    OnboardingRequest,
    RequestDevice,
    RequestDocument,
    RequestLocation,
    RequestStatus,
    RequestType,
    Shipment,
    Store,
)
from ..time_utils import age_label, utcnow
from .concurrency import run_with_retry
from .device_service import device_issues, devices_badge, devices_satisfied
from .document_service import docs_badge, document_issues, documents_satisfied
from .materialization_service import (
    account_issues,
    ensure_unique_location_names,
    location_issues,
    locations_satisfied,
)
from .request_access import get_request, require_mutable
from .shipment_service import shipment_issues, shipments_satisfied, shipping_badge
from .timeline_service import append_event


S = RequestStatus

TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    S.SUBMITTED: frozenset({S.IN_REVIEW, S.WAITING_DOCS, S.REJECTED, S.ACTIVE}),
    S.IN_REVIEW: frozenset({S.WAITING_DOCS, S.REJECTED, S.ACTIVE}),
    S.WAITING_DOCS: frozenset({S.APPROVED, S.REJECTED, S.ACTIVE}),
    S.APPROVED: frozenset({S.SHIPPED, S.REJECTED, S.ACTIVE}),
    S.SHIPPED: frozenset({S.REJECTED, S.ACTIVE}),
    S.ACTIVE: frozenset(),
    S.REJECTED: frozenset(),
}


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def _set_status(req: OnboardingRequest, target: RequestStatus, now) -> RequestStatus:
    previous = req.status
    if not can_transition(previous, target):
        raise InvalidTransition(
            f"Cannot move request {req.id} from '{previous.name}' to '{target.name}'"
        )
    req.status = target
    req.last_status_at = now
    return previous


@dataclass
class ActivationResult:
    request: OnboardingRequest
    activated: bool
    already_active: bool = False
    forced: bool = False
    bypassed_issues: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "request": self.request.to_dict(),
            "activated": self.activated,
            "already_active": self.already_active,
            "forced": self.forced,
            "bypassed_issues": self.bypassed_issues,
        }


# ---------------------------------------------------------------------------
# Submission and queue
# ---------------------------------------------------------------------------

def create_request(
    *,
    business_name: str,
    request_type: RequestType = RequestType.NEW_CLIENT,
    business_type: BusinessType = BusinessType.MULTI_LOCATION_OWNER,
    owner_name: str | None = None,
    owner_email: str | None = None,
    owner_phone: str | None = None,
    notes: str | None = None,
    organization_id: int | None = None,
    locations: list[dict] | None = None,
    actor_user_id: int | None = None,
) -> OnboardingRequest:
    """
    Submit a new onboarding request with its proposed locations.

    ADD_LOCATION and DEVICE_CHANGE requests extend an existing account and
    may pass organization_id up front.
    """
    if not business_name:
        raise InvalidArgument("business_name is required")
    ensure_unique_location_names(
        [loc["name"] for loc in locations or []],
        organization_id=organization_id,
    )

    now = utcnow()
    req = OnboardingRequest(
        request_type=request_type,
        business_type=business_type,
        status=S.SUBMITTED,
        business_name=business_name,
        owner_name=owner_name,
        owner_email=owner_email,
        owner_phone=owner_phone,
        notes=notes,
        organization_id=organization_id,
        submitted_by_user_id=actor_user_id,
        last_status_at=now,
    )
    db.session.add(req)
    db.session.flush()

    for loc in locations or []:
        db.session.add(RequestLocation(
            request_id=req.id,
            name=loc["name"],
            address=loc.get("address"),
            requested_devices_count=loc.get("requested_devices_count"),
        ))

    count = len(locations or [])
    append_event(
        request_id=req.id,
        event_type=EventType.STATUS_CHANGE,
        message=f"{request_type.label} request submitted for {business_name} ({count} location(s))",
        actor_user_id=actor_user_id,
        occurred_at=now,
    )
    db.session.commit()
    return req


def list_requests(
    *,
    statuses: list[RequestStatus] | None = None,
    request_type: RequestType | None = None,
    assigned_user_id: int | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[OnboardingRequest], int]:
    q = db.session.query(OnboardingRequest)
    if statuses:
        q = q.filter(OnboardingRequest.status.in_(statuses))
    if request_type is not None:
        q = q.filter(OnboardingRequest.request_type == request_type)
    if assigned_user_id is not None:
        q = q.filter(OnboardingRequest.assigned_user_id == assigned_user_id)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            OnboardingRequest.business_name.ilike(like),
            OnboardingRequest.owner_name.ilike(like),
            OnboardingRequest.owner_email.ilike(like),
        ))

    total = q.count()
    rows = (
        q.order_by(OnboardingRequest.created_at.desc(), OnboardingRequest.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


def summarize(req: OnboardingRequest, *, now=None) -> dict:
    """Queue row: request fields plus progress badges and age."""
    expected = sum(loc.requested_devices_count or 0 for loc in req.locations) or None
    data = req.to_dict()
    data.update({
        "location_count": len(req.locations),
        "docs_badge": docs_badge(req.documents),
        "devices_badge": devices_badge(req.devices, expected=expected),
        "shipping_badge": shipping_badge(req.shipments),
        "age": age_label(req.created_at, now=now),
        "assigned_user": req.assigned_user.label if req.assigned_user else None,
    })
    return data


# ---------------------------------------------------------------------------
# Operator transitions
# ---------------------------------------------------------------------------

def _status_op(request_id: int, target: RequestStatus, actor_user_id, mutate=None, detail=None):
    def _op() -> OnboardingRequest:
        req = get_request(request_id, lock=True)
        require_mutable(req)

        now = utcnow()
        previous = _set_status(req, target, now)
        if mutate is not None:
            mutate(req, now)

        message = f"Status {previous.label} -> {target.label}"
        if detail:
            message += f": {detail}"
        append_event(
            request_id=req.id,
            event_type=EventType.STATUS_CHANGE,
            message=message,
            actor_user_id=actor_user_id,
            occurred_at=now,
        )
        db.session.commit()
        return req

    return run_with_retry(_op)


def claim_request(request_id: int, *, actor_user_id: int) -> OnboardingRequest:
    """SUBMITTED -> IN_REVIEW; the claiming operator becomes the assignee."""
    def _assign(req, now):
        req.assigned_user_id = actor_user_id

    return _status_op(request_id, S.IN_REVIEW, actor_user_id, _assign, "claimed")


def approve_request(request_id: int, *, actor_user_id: int | None = None, note: str | None = None) -> OnboardingRequest:
    def _stamp(req, now):
        req.approved_at = now

    return _status_op(request_id, S.APPROVED, actor_user_id, _stamp, note)


def reject_request(request_id: int, *, reason: str | None = None, actor_user_id: int | None = None) -> OnboardingRequest:
    """
    Move a non-terminal request to REJECTED. Children freeze; nothing is deleted.
    """
    def _stamp(req, now):
        req.rejected_at = now
        req.rejection_reason = reason

    return _status_op(request_id, S.REJECTED, actor_user_id, _stamp, reason)


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

def collect_activation_issues(req: OnboardingRequest) -> list[dict]:
    """
    Evaluate every activation guard against freshly loaded child rows.

    Returns the unmet conditions in guard order; empty means eligible.
    """
    shipments = db.session.query(Shipment).filter_by(request_id=req.id).order_by(Shipment.id).all()
    documents = db.session.query(RequestDocument).filter_by(request_id=req.id).order_by(RequestDocument.id).all()
    devices = db.session.query(RequestDevice).filter_by(request_id=req.id).order_by(RequestDevice.id).all()
    locations = db.session.query(RequestLocation).filter_by(request_id=req.id).order_by(RequestLocation.id).all()

    issues: list[dict] = []
    if not shipments_satisfied(shipments):
        issues.extend(shipment_issues(shipments))
    if not documents_satisfied(documents):
        issues.extend(document_issues(documents))
    if not devices_satisfied(devices):
        issues.extend(device_issues(devices))
    if not locations_satisfied(locations):
        issues.extend(location_issues(locations))
    issues.extend(account_issues(req))
    return issues


def preview_activation(request_id: int) -> dict:
    """Read-only eligibility check; writes nothing."""
    req = get_request(request_id)
    issues = [] if req.status is S.ACTIVE else collect_activation_issues(req)
    return {
        "request_id": req.id,
        "status": req.status.name,
        "eligible": req.status is S.ACTIVE or (not req.is_frozen and not issues),
        "issues": issues,
    }


def evaluate_activation(
    request_id: int,
    *,
    force: bool = False,
    actor_user_id: int | None = None,
) -> ActivationResult:
    """
    Activate the request if every guard holds, or unconditionally when forced.

    The status write, activated_at, account/store switch-on and the ACTIVATED
    event are committed together. A lost version race is retried from a
    fresh read; the retry sees ACTIVE and returns the idempotent success.

    Raises:
        ActivationBlocked: guards failed and force is False
        RequestFrozen: the request was rejected
        Conflict: the version race was lost on every attempt
    """
    def _op() -> ActivationResult:
        req = get_request(request_id, lock=True)

        if req.status is S.ACTIVE:
            return ActivationResult(request=req, activated=False, already_active=True)
        if req.status is S.REJECTED:
            raise RequestFrozen(req.id, req.status.name)

        issues = collect_activation_issues(req)
        if issues and not force:
            raise ActivationBlocked(req.id, issues)

        now = utcnow()
        previous = _set_status(req, S.ACTIVE, now)
        req.activated_at = now

        if req.organization is not None and not req.organization.is_active:
            req.organization.is_active = True
            req.organization.activated_at = now

        store_ids = [loc.location_id for loc in req.locations if loc.location_id is not None]
        if store_ids:
            for store in db.session.query(Store).filter(Store.id.in_(store_ids)).all():
                store.provisioning_status = "ACTIVE"

        message = f"Request activated (was {previous.label})"
        if issues:
            message += f"; forced past {len(issues)} unmet condition(s)"
        append_event(
            request_id=req.id,
            event_type=EventType.ACTIVATED,
            message=message,
            actor_user_id=actor_user_id,
            occurred_at=now,
        )
        db.session.commit()
        return ActivationResult(request=req, activated=True, forced=bool(issues), bypassed_issues=issues)

    result = run_with_retry(_op)
    if result.forced:
        current_app.logger.warning(
            "Onboarding request %s force-activated by user %s past %d unmet condition(s): %s",
            request_id,
            actor_user_id,
            len(result.bypassed_issues),
            ", ".join(issue["code"] for issue in result.bypassed_issues),
        )
    elif result.activated:
        current_app.logger.info("Onboarding request %s activated", request_id)
    return result


def request_detail(request_id: int) -> dict:
    req = get_request(request_id)
    data = req.to_dict(include_children=True)
    data["activation"] = preview_activation(request_id)
    data["docs_badge"] = docs_badge(req.documents)
    data["devices_badge"] = devices_badge(req.devices)
    data["shipping_badge"] = shipping_badge(req.shipments)
    return data
