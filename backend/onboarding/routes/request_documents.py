# Overview: Flask API routes for onboarding documents; request, upload, verify, list.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import InvalidArgument, OnboardingError
from ..models import DeliveryChannel, DocumentStatus, DocumentType
from ..services import document_service
from ..validation import optional_text, parse_bool, parse_enum_list, require_text
from .common import actor_id, error_response, internal_error, json_payload


request_documents_bp = Blueprint("request_documents", __name__, url_prefix="/api/onboarding/requests")


@request_documents_bp.get("/<int:request_id>/documents")
@require_auth
@require_permission("VIEW_ONBOARDING")
def list_documents_route(request_id: int):
    try:
        raw_status = request.args.get("status")
        status = DocumentStatus.parse(raw_status, field="status") if raw_status else None
        docs = document_service.list_documents(request_id, status=status)
        return jsonify({
            "items": [doc.to_dict() for doc in docs],
            "count": len(docs),
            "badge": document_service.docs_badge(docs),
        }), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to list documents for onboarding request %s", request_id)


@request_documents_bp.post("/<int:request_id>/documents")
@require_auth
@require_permission("VERIFY_DOCUMENTS")
def upload_document_route(request_id: int):
    """Upload a document. Body: {"doc_type": ..., "file_ref": ..., "notes": ...}"""
    data = json_payload()
    try:
        doc = document_service.upload_document(
            request_id,
            DocumentType.parse(data.get("doc_type"), field="doc_type"),
            require_text(data, "file_ref", max_length=512),
            actor_user_id=actor_id(),
            notes=optional_text(data, "notes", max_length=4000),
        )
        return jsonify(doc.to_dict()), 201
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to upload document for onboarding request %s", request_id)


@request_documents_bp.post("/<int:request_id>/documents/request")
@require_auth
@require_permission("VERIFY_DOCUMENTS")
def request_documents_route(request_id: int):
    """
    Batch-request documents.

    Body: {"doc_types": [...], "channels": ["EMAIL", "SMS"], "note": ...}
    Notification failures come back in "warnings" on a 201.
    """
    data = json_payload()
    try:
        doc_types = parse_enum_list(DocumentType, data.get("doc_types"), field="doc_types")
        if not doc_types:
            raise InvalidArgument("doc_types is required")

        channels = None
        if "channels" in data:
            raw = data.get("channels") or []
            if not isinstance(raw, list):
                raise InvalidArgument("channels must be a list")
            channels = []
            for value in raw:
                channel = DeliveryChannel.parse(value, field="channels")
                if channel not in channels:
                    channels.append(channel)

        result = document_service.request_documents(
            request_id,
            doc_types,
            channels=channels,
            actor_user_id=actor_id(),
            note=optional_text(data, "note", max_length=1000),
        )
        return jsonify(result.to_dict()), 201
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to request documents for onboarding request %s", request_id)


@request_documents_bp.post("/<int:request_id>/documents/<int:document_id>/verify")
@require_auth
@require_permission("VERIFY_DOCUMENTS")
def verify_document_route(request_id: int, document_id: int):
    """Body: {"approve": true|false, "notes": ...}"""
    data = json_payload()
    try:
        if "approve" not in data:
            raise InvalidArgument("approve is required")
        doc = document_service.verify_document(
            document_id,
            approve=parse_bool(data.get("approve"), field="approve"),
            request_id=request_id,
            actor_user_id=actor_id(),
            notes=optional_text(data, "notes", max_length=4000),
        )
        return jsonify(doc.to_dict()), 200
    except OnboardingError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to verify document %s", document_id)
