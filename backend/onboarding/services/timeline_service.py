# Overview: Append-only timeline for onboarding requests.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..errors import InvalidArgument
from ..extensions import db
from ..models import RequestEvent, User, EventType
from ..time_utils import utcnow
from .request_access import get_request, require_mutable

"""
Timeline invariants

- Append-only: no code path updates or deletes a RequestEvent.
- Events are written inside the same DB transaction as the change they
  record; append_event only flushes, the caller commits.
- Events outlive rejection of their request.
- Listing order is newest first.
"""


def append_event(
    *,
    request_id: int,
    event_type: EventType,
    message: str,
    actor_user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
) -> RequestEvent:
    actor_label = None
    if actor_user_id is not None:
        actor = db.session.get(User, actor_user_id)
        actor_label = actor.label if actor else None

    ev = RequestEvent(
        request_id=request_id,
        event_type=event_type,
        message=message,
        actor_user_id=actor_user_id,
        actor_label=actor_label or "System",
        created_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def add_note(request_id: int, message: str, *, actor_user_id: int | None = None) -> RequestEvent:
    """Append a manual NOTE. Notes are child mutations and respect the freeze."""
    message = (message or "").strip()
    if not message:
        raise InvalidArgument("message is required")

    req = get_request(request_id)
    require_mutable(req)

    ev = append_event(
        request_id=req.id,
        event_type=EventType.NOTE,
        message=message,
        actor_user_id=actor_user_id,
    )
    db.session.commit()
    return ev


def list_events(
    request_id: int,
    *,
    event_type: EventType | None = None,
    limit: int = 200,
) -> list[RequestEvent]:
    """Timeline for a request, newest first. Readable in every state."""
    get_request(request_id)

    q = db.session.query(RequestEvent).filter_by(request_id=request_id)
    if event_type is not None:
        q = q.filter(RequestEvent.event_type == event_type)

    q = q.order_by(RequestEvent.created_at.desc(), RequestEvent.id.desc())
    return q.limit(limit).all()


def count_events(request_id: int, event_type: EventType) -> int:
    return (
        db.session.query(RequestEvent)
        .filter(RequestEvent.request_id == request_id, RequestEvent.event_type == event_type)
        .count()
    )
