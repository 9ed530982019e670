# Overview: Shared lookups and guards for the onboarding aggregate.

"""
Every mutating onboarding operation starts here:

    req = get_request(request_id, lock=True)
    require_mutable(req)

get_request always re-reads from the database (populate_existing), so
callers never act on a stale in-memory copy of the aggregate.
"""

from __future__ import annotations

from ..errors import NotFound, RequestFrozen
from ..extensions import db
from ..models import OnboardingRequest
from .concurrency import lock_for_update


def get_request(request_id: int, *, lock: bool = False) -> OnboardingRequest:
    q = db.session.query(OnboardingRequest).filter_by(id=request_id).populate_existing()
    if lock:
        q = lock_for_update(q)
    req = q.first()
    if req is None:
        raise NotFound(f"Onboarding request {request_id} not found")
    return req


def require_mutable(req: OnboardingRequest) -> None:
    """Raise RequestFrozen if the request is ACTIVE or REJECTED."""
    if req.is_frozen:
        raise RequestFrozen(req.id, req.status.name)


def get_child(model, child_id: int, request_id: int | None, *, label: str):
    """
    Load a child row, optionally checking it belongs to request_id.

    A child addressed under the wrong request is reported as missing.
    """
    row = db.session.query(model).filter_by(id=child_id).populate_existing().first()
    if row is None or (request_id is not None and row.request_id != request_id):
        raise NotFound(f"{label} {child_id} not found")
    return row
