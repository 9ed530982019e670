# Overview: Location materializer; turns proposed locations into real Store rows.

"""
Location Materializer

An onboarding request proposes an account and its locations. Materialization
turns them into first-class records:

    request.organization_id is None  -> create Organization (inactive)
    RequestLocation Pending          -> create Store, back-fill location_id

RULES:
1. Idempotent: a Materialized location is skipped; re-running creates nothing
2. Locations need the account first (PrerequisiteMissing otherwise)
3. One Store per RequestLocation. Location names are unique within a request and
   among the account's Stores; a name clash is rejected, never merged
4. Created records have their own lifecycle; later rejection of the request
   does not delete them
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import InvalidArgument, PrerequisiteMissing
from ..extensions import db
from ..models import (
    EventType,
    Materialized,
    Organization,
    Pending,
    RequestLocation,
    Store,
)
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .request_access import get_request, require_mutable
from .timeline_service import append_event


@dataclass
class MaterializationResult:
    organization_id: int
    created: list[RequestLocation] = field(default_factory=list)
    skipped: list[RequestLocation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "organization_id": self.organization_id,
            "created_count": len(self.created),
            "skipped_count": len(self.skipped),
            "locations": [loc.to_dict() for loc in self.created + self.skipped],
        }


def account_issues(req) -> list[dict]:
    if req.organization_id is not None:
        return []
    return [{
        "code": "ACCOUNT_NOT_LINKED",
        "guard": "account",
        "entity_type": "request",
        "entity_id": req.id,
        "message": "No franchise account has been created for this request",
    }]


def locations_satisfied(locations: list[RequestLocation]) -> bool:
    return all(isinstance(loc.materialization, Materialized) for loc in locations)


def location_issues(locations: list[RequestLocation]) -> list[dict]:
    return [
        {
            "code": "LOCATION_NOT_MATERIALIZED",
            "guard": "locations",
            "entity_type": "location",
            "entity_id": loc.id,
            "message": f"Location '{loc.name}' has not been created",
        }
        for loc in locations
        if isinstance(loc.materialization, Pending)
    ]


def _name_key(name: str) -> str:
    return name.strip().casefold()


def _store_names(organization_id: int | None) -> set[str]:
    if organization_id is None:
        return set()
    rows = db.session.query(Store.name).filter_by(org_id=organization_id).all()
    return {_name_key(row.name) for row in rows}


def ensure_unique_location_names(
    names: list[str],
    *,
    existing: list[str] | None = None,
    organization_id: int | None = None,
) -> None:
    """
    Reject location names that repeat within names, match an existing
    location of the request, or match a Store already under the account.
    Comparison ignores case and surrounding whitespace.
    """
    taken = {_name_key(n) for n in (existing or [])}
    stores = _store_names(organization_id)

    for name in names:
        key = _name_key(name)
        if key in taken:
            raise InvalidArgument(f"Duplicate location name '{name}'")
        if key in stores:
            raise InvalidArgument(f"A store named '{name}' already exists for this account")
        taken.add(key)


def add_location(
    request_id: int,
    *,
    name: str,
    address: str | None = None,
    requested_devices_count: int | None = None,
    actor_user_id: int | None = None,
) -> RequestLocation:
    req = get_request(request_id)
    require_mutable(req)
    ensure_unique_location_names(
        [name],
        existing=[loc.name for loc in req.locations],
        organization_id=req.organization_id,
    )

    loc = RequestLocation(
        request_id=req.id,
        name=name,
        address=address,
        requested_devices_count=requested_devices_count,
    )
    db.session.add(loc)
    db.session.flush()

    append_event(
        request_id=req.id,
        event_type=EventType.NOTE,
        message=f"Location '{name}' proposed",
        actor_user_id=actor_user_id,
    )
    db.session.commit()
    return loc


def materialize_account(
    request_id: int,
    *,
    name: str | None = None,
    actor_user_id: int | None = None,
) -> Organization:
    """
    Create the franchise account for the request, or return the one already linked.

    New accounts start inactive; activation switches them on.
    """
    def _op() -> Organization:
        req = get_request(request_id, lock=True)
        require_mutable(req)

        if req.organization_id is not None:
            return req.organization

        org = Organization(
            name=(name or req.business_name),
            code=f"ONB-{req.id:06d}",
            is_active=False,
        )
        db.session.add(org)
        db.session.flush()

        req.organization_id = org.id
        append_event(
            request_id=req.id,
            event_type=EventType.NOTE,
            message=f"Account '{org.name}' created (org {org.id})",
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        return org

    return run_with_retry(_op)


def materialize_locations(request_id: int, *, actor_user_id: int | None = None) -> MaterializationResult:
    """
    Create a Store for every pending location of the request.

    Raises PrerequisiteMissing when the request has no account yet.
    """
    def _op() -> MaterializationResult:
        req = get_request(request_id, lock=True)
        require_mutable(req)

        if req.organization_id is None:
            raise PrerequisiteMissing(
                f"Onboarding request {req.id} has no account; create the account first"
            )

        pending = [loc for loc in req.locations if isinstance(loc.materialization, Pending)]
        ensure_unique_location_names(
            [loc.name for loc in pending],
            organization_id=req.organization_id,
        )

        result = MaterializationResult(organization_id=req.organization_id)
        now = utcnow()

        for loc in req.locations:
            if isinstance(loc.materialization, Materialized):
                result.skipped.append(loc)
                continue

            store = Store(
                org_id=req.organization_id,
                name=loc.name,
                address=loc.address,
                provisioning_status="PENDING",
            )
            db.session.add(store)
            db.session.flush()

            loc.location_id = store.id
            loc.materialized_at = now
            result.created.append(loc)

        if result.created:
            names = ", ".join(loc.name for loc in result.created)
            append_event(
                request_id=req.id,
                event_type=EventType.NOTE,
                message=f"Locations created: {names}",
                actor_user_id=actor_user_id,
                occurred_at=now,
            )

        db.session.commit()
        return result

    return run_with_retry(_op)
