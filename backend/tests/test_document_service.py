# Overview: Pytest coverage for document requests, uploads, review and notifications.

import pytest

from conftest import submit_request
from onboarding.errors import InvalidArgument, InvalidTransition, NotFound
from onboarding.models import (
    DeliveryChannel,
    DocumentStatus,
    DocumentType,
    EventType,
    RequestDocument,
    RequestStatus,
)
from onboarding.services import document_service, timeline_service


class TestRequestDocuments:

    def test_creates_missing_placeholders_and_one_event(self, db_session, recording_notifier):
        req = submit_request()
        result = document_service.request_documents(
            req.id,
            [DocumentType.IDENTITY, DocumentType.TAX_ID],
            channels=[DeliveryChannel.EMAIL],
        )

        assert [d.doc_type for d in result.created] == [DocumentType.IDENTITY, DocumentType.TAX_ID]
        assert all(d.status is DocumentStatus.MISSING for d in result.created)
        assert result.request.status is RequestStatus.WAITING_DOCS
        assert result.warnings == []
        assert timeline_service.count_events(req.id, EventType.DOC_REQUEST) == 1

        assert len(recording_notifier.sent) == 1
        channel, recipient, subject, body = recording_notifier.sent[0]
        assert channel is DeliveryChannel.EMAIL
        assert recipient == "owner@harbor.example"
        assert "FEIN Letter" in body

    def test_default_channels_come_from_config(self, db_session, recording_notifier):
        req = submit_request()
        document_service.request_documents(req.id, [DocumentType.LEASE])
        assert [sent[0] for sent in recording_notifier.sent] == [DeliveryChannel.EMAIL]

    def test_rerequest_skips_types_already_missing(self, db_session):
        req = submit_request()
        document_service.request_documents(req.id, [DocumentType.IDENTITY], channels=[])
        again = document_service.request_documents(
            req.id, [DocumentType.IDENTITY, DocumentType.LEASE], channels=[]
        )

        assert [d.doc_type for d in again.created] == [DocumentType.LEASE]
        assert again.skipped_types == [DocumentType.IDENTITY]
        assert db_session.query(RequestDocument).filter_by(
            request_id=req.id, doc_type=DocumentType.IDENTITY
        ).count() == 1
        assert timeline_service.count_events(req.id, EventType.DOC_REQUEST) == 2

    def test_dedupe_can_be_disabled(self, app, db_session):
        req = submit_request()
        app.config["ONBOARDING_DEDUPE_DOCUMENT_REQUESTS"] = False
        try:
            document_service.request_documents(req.id, [DocumentType.IDENTITY], channels=[])
            document_service.request_documents(req.id, [DocumentType.IDENTITY], channels=[])
        finally:
            app.config["ONBOARDING_DEDUPE_DOCUMENT_REQUESTS"] = True

        assert db_session.query(RequestDocument).filter_by(request_id=req.id).count() == 2

    def test_notifier_failure_is_a_warning(self, db_session, failing_notifier):
        req = submit_request()
        result = document_service.request_documents(
            req.id, [DocumentType.IDENTITY], channels=[DeliveryChannel.EMAIL, DeliveryChannel.SMS]
        )

        assert len(result.warnings) == 2
        assert result.warnings[0].startswith("EMAIL: delivery failed")
        docs = document_service.list_documents(req.id)
        assert [d.status for d in docs] == [DocumentStatus.MISSING]

    def test_missing_recipient_is_a_warning(self, db_session, recording_notifier):
        req = submit_request(owner_phone=None)
        result = document_service.request_documents(req.id, [DocumentType.IDENTITY], channels=[DeliveryChannel.SMS])
        assert result.warnings == [f"SMS: no recipient on file for request {req.id}"]
        assert recording_notifier.sent == []

    def test_empty_type_list_rejected(self, db_session):
        req = submit_request()
        with pytest.raises(InvalidArgument):
            document_service.request_documents(req.id, [], channels=[])

    def test_unknown_request(self, db_session):
        with pytest.raises(NotFound):
            document_service.request_documents(9999, [DocumentType.IDENTITY], channels=[])


class TestUploadAndVerify:

    def test_upload_fills_missing_placeholder(self, db_session, agent_user):
        req = submit_request()
        result = document_service.request_documents(req.id, [DocumentType.TAX_ID], channels=[])
        placeholder_id = result.created[0].id

        doc = document_service.upload_document(
            req.id, DocumentType.TAX_ID, "s3://docs/fein.pdf", actor_user_id=agent_user.id
        )
        assert doc.id == placeholder_id
        assert doc.status is DocumentStatus.UPLOADED
        assert doc.uploaded_by_user_id == agent_user.id

        latest = timeline_service.list_events(req.id)[0]
        assert latest.event_type is EventType.DOC_UPLOADED
        assert latest.message == "FEIN Letter uploaded"

    def test_upload_without_placeholder_creates_row(self, db_session):
        req = submit_request()
        doc = document_service.upload_document(req.id, DocumentType.LEASE, "s3://docs/lease.pdf")
        assert doc.status is DocumentStatus.UPLOADED
        assert len(document_service.list_documents(req.id)) == 1

    def test_upload_requires_file_ref(self, db_session):
        req = submit_request()
        with pytest.raises(InvalidArgument):
            document_service.upload_document(req.id, DocumentType.LEASE, "  ")

    def test_verify_and_reject(self, db_session, admin_user):
        req = submit_request()
        a = document_service.upload_document(req.id, DocumentType.IDENTITY, "s3://docs/id.png")
        b = document_service.upload_document(req.id, DocumentType.BANK_VOID_CHECK, "s3://docs/check.png")

        verified = document_service.verify_document(a.id, approve=True, actor_user_id=admin_user.id)
        rejected = document_service.verify_document(
            b.id, approve=False, actor_user_id=admin_user.id, notes="Illegible"
        )

        assert verified.status is DocumentStatus.VERIFIED
        assert verified.verified_by_user_id == admin_user.id
        assert rejected.status is DocumentStatus.REJECTED
        assert rejected.notes == "Illegible"
        assert timeline_service.count_events(req.id, EventType.DOC_VERIFIED) == 2

    def test_rejected_document_must_be_reuploaded(self, db_session):
        req = submit_request()
        doc = document_service.upload_document(req.id, DocumentType.IDENTITY, "s3://docs/id.png")
        document_service.verify_document(doc.id, approve=False)

        with pytest.raises(InvalidTransition):
            document_service.verify_document(doc.id, approve=True)

        again = document_service.upload_document(req.id, DocumentType.IDENTITY, "s3://docs/id-v2.png")
        assert again.id == doc.id
        assert again.status is DocumentStatus.UPLOADED
        assert timeline_service.list_events(req.id)[0].message == "Driver License / ID re-uploaded after rejection"

        assert document_service.verify_document(doc.id, approve=True).status is DocumentStatus.VERIFIED

    def test_missing_document_cannot_be_verified(self, db_session):
        req = submit_request()
        result = document_service.request_documents(req.id, [DocumentType.IDENTITY], channels=[])
        with pytest.raises(InvalidTransition):
            document_service.verify_document(result.created[0].id, approve=True)

    def test_document_under_other_request_is_not_found(self, db_session):
        first = submit_request("First Co")
        second = submit_request("Second Co")
        doc = document_service.upload_document(first.id, DocumentType.IDENTITY, "s3://docs/id.png")
        with pytest.raises(NotFound):
            document_service.verify_document(doc.id, approve=True, request_id=second.id)


def test_docs_badge(db_session):
    req = submit_request()
    assert document_service.docs_badge([]) == "pending"

    document_service.request_documents(req.id, [DocumentType.IDENTITY, DocumentType.TAX_ID], channels=[])
    assert document_service.docs_badge(document_service.list_documents(req.id)) == "missing"

    doc = document_service.upload_document(req.id, DocumentType.IDENTITY, "s3://docs/id.png")
    assert document_service.docs_badge(document_service.list_documents(req.id)) == "partial"

    document_service.verify_document(doc.id, approve=True)
    tax = document_service.upload_document(req.id, DocumentType.TAX_ID, "s3://docs/fein.pdf")
    document_service.verify_document(tax.id, approve=True)
    assert document_service.docs_badge(document_service.list_documents(req.id)) == "complete"
