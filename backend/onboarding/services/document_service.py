# Overview: Document tracker; required compliance documents per request.

"""
Document Tracker

LIFECYCLE (per RequestDocument):
    MISSING -> UPLOADED -> VERIFIED
                        -> REJECTED -> UPLOADED (re-upload)

RULES:
1. Every hop appends a timeline event (DOC_REQUEST / DOC_UPLOADED / DOC_VERIFIED)
2. A REJECTED document goes back through UPLOADED; it is never verified directly
3. Any document not VERIFIED blocks activation (see documents_satisfied)
4. Requesting documents moves the request to WAITING_DOCS when it has not
   reached that stage yet; it never moves a request backwards
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..errors import InvalidArgument, InvalidTransition
from ..extensions import db
from ..models import (
    DeliveryChannel,
    DocumentStatus,
    DocumentType,
    EventType,
    OnboardingRequest,
    RequestDocument,
    RequestStatus,
)
from ..time_utils import utcnow
from . import notification_service
from .concurrency import run_with_retry
from .request_access import get_child, get_request, require_mutable
from .timeline_service import append_event


# Statuses from which a document request advances the request to WAITING_DOCS
_PRE_DOCS_STATUSES = {RequestStatus.SUBMITTED, RequestStatus.IN_REVIEW}


@dataclass
class DocumentRequestResult:
    request: OnboardingRequest
    created: list[RequestDocument] = field(default_factory=list)
    skipped_types: list[DocumentType] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "request": self.request.to_dict(),
            "documents": [doc.to_dict() for doc in self.created],
            "skipped_doc_types": [t.name for t in self.skipped_types],
            "warnings": self.warnings,
        }


def documents_satisfied(documents: list[RequestDocument]) -> bool:
    return all(doc.status is DocumentStatus.VERIFIED for doc in documents)


def document_issues(documents: list[RequestDocument]) -> list[dict]:
    return [
        {
            "code": "DOCUMENT_NOT_VERIFIED",
            "guard": "documents",
            "entity_type": "document",
            "entity_id": doc.id,
            "message": f"{doc.doc_type.label} is {doc.status.label.lower()}, must be verified",
        }
        for doc in documents
        if doc.status is not DocumentStatus.VERIFIED
    ]


def request_documents(
    request_id: int,
    doc_types: list[DocumentType],
    *,
    channels: list[DeliveryChannel] | None = None,
    actor_user_id: int | None = None,
    note: str | None = None,
) -> DocumentRequestResult:
    """
    Issue a document request: one MISSING placeholder per type, one DOC_REQUEST event.

    With ONBOARDING_DEDUPE_DOCUMENT_REQUESTS enabled (default), a type that
    already has a MISSING placeholder is skipped instead of duplicated.

    Notices go out after the commit; delivery failures become warnings.
    """
    if not doc_types:
        raise InvalidArgument("At least one document type is required")
    if channels is None:
        channels = [
            DeliveryChannel.parse(c)
            for c in current_app.config.get("ONBOARDING_NOTIFY_CHANNELS_DEFAULT", ["EMAIL"])
        ]
    dedupe = bool(current_app.config.get("ONBOARDING_DEDUPE_DOCUMENT_REQUESTS", True))

    def _op() -> DocumentRequestResult:
        req = get_request(request_id, lock=True)
        require_mutable(req)

        result = DocumentRequestResult(request=req)
        missing_types = {
            doc.doc_type for doc in req.documents if doc.status is DocumentStatus.MISSING
        }

        for doc_type in doc_types:
            if dedupe and doc_type in missing_types:
                result.skipped_types.append(doc_type)
                continue
            doc = RequestDocument(
                request_id=req.id,
                doc_type=doc_type,
                status=DocumentStatus.MISSING,
                notes=note,
            )
            db.session.add(doc)
            result.created.append(doc)
            missing_types.add(doc_type)

        previous = req.status
        now = utcnow()
        if previous in _PRE_DOCS_STATUSES:
            req.status = RequestStatus.WAITING_DOCS
            req.last_status_at = now

        db.session.flush()

        labels = ", ".join(t.label for t in doc_types)
        message = f"Requested documents: {labels}"
        if channels:
            message += f" via {', '.join(c.value for c in channels)}"
        if result.skipped_types:
            message += f" ({len(result.skipped_types)} already pending)"
        if req.status is not previous:
            message += f"; status {previous.label} -> {req.status.label}"

        append_event(
            request_id=req.id,
            event_type=EventType.DOC_REQUEST,
            message=message,
            actor_user_id=actor_user_id,
            occurred_at=now,
        )
        db.session.commit()
        return result

    result = run_with_retry(_op)
    result.warnings = notification_service.deliver_document_request(
        result.request, result.created, channels
    )
    return result


def upload_document(
    request_id: int,
    doc_type: DocumentType,
    file_ref: str,
    *,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> RequestDocument:
    """
    Attach a file to the pending document of doc_type (MISSING or REJECTED).

    An UPLOADED document of the same type gets its file replaced. When the
    request has nothing pending for the type, a new UPLOADED row is created.
    """
    file_ref = (file_ref or "").strip()
    if not file_ref:
        raise InvalidArgument("file_ref is required")

    req = get_request(request_id)
    require_mutable(req)

    candidates = [doc for doc in req.documents if doc.doc_type is doc_type]
    target = next(
        (d for d in candidates if d.status in (DocumentStatus.MISSING, DocumentStatus.REJECTED)),
        None,
    ) or next((d for d in candidates if d.status is DocumentStatus.UPLOADED), None)

    if target is None:
        target = RequestDocument(request_id=req.id, doc_type=doc_type)
        db.session.add(target)
        previous = None
    else:
        previous = target.status

    now = utcnow()
    target.status = DocumentStatus.UPLOADED
    target.file_ref = file_ref
    target.uploaded_by_user_id = actor_user_id
    target.uploaded_at = now
    target.verified_at = None
    target.verified_by_user_id = None
    if notes is not None:
        target.notes = notes
    db.session.flush()

    if previous is DocumentStatus.REJECTED:
        message = f"{doc_type.label} re-uploaded after rejection"
    elif previous is DocumentStatus.UPLOADED:
        message = f"{doc_type.label} file replaced"
    else:
        message = f"{doc_type.label} uploaded"

    append_event(
        request_id=req.id,
        event_type=EventType.DOC_UPLOADED,
        message=message,
        actor_user_id=actor_user_id,
        occurred_at=now,
    )
    db.session.commit()
    return target


def verify_document(
    document_id: int,
    *,
    approve: bool,
    request_id: int | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> RequestDocument:
    """
    Review an UPLOADED document: VERIFIED when approve, REJECTED otherwise.
    """
    doc = get_child(RequestDocument, document_id, request_id, label="Document")
    require_mutable(get_request(doc.request_id))

    if doc.status is not DocumentStatus.UPLOADED:
        raise InvalidTransition(
            f"Cannot review document {document_id}: "
            f"current status is '{doc.status.name}', must be 'UPLOADED'"
        )

    now = utcnow()
    doc.status = DocumentStatus.VERIFIED if approve else DocumentStatus.REJECTED
    doc.verified_at = now
    doc.verified_by_user_id = actor_user_id
    if notes is not None:
        doc.notes = notes

    message = f"{doc.doc_type.label} {'verified' if approve else 'rejected'}"
    if notes:
        message += f": {notes}"

    append_event(
        request_id=doc.request_id,
        event_type=EventType.DOC_VERIFIED,
        message=message,
        actor_user_id=actor_user_id,
        occurred_at=now,
    )
    db.session.commit()
    return doc


def list_documents(request_id: int, *, status: DocumentStatus | None = None) -> list[RequestDocument]:
    get_request(request_id)
    q = db.session.query(RequestDocument).filter_by(request_id=request_id)
    if status is not None:
        q = q.filter(RequestDocument.status == status)
    return q.order_by(RequestDocument.id.asc()).all()


def docs_badge(documents: list[RequestDocument]) -> str:
    """Queue badge: complete, partial, missing, or pending (nothing requested yet)."""
    if not documents:
        return "pending"
    verified = sum(1 for d in documents if d.status is DocumentStatus.VERIFIED)
    if verified == len(documents):
        return "complete"
    if any(d.status in (DocumentStatus.UPLOADED, DocumentStatus.VERIFIED) for d in documents):
        return "partial"
    return "missing"
