# Overview: Pytest coverage for request submission, queue and operator transitions.

import pytest

from conftest import submit_request
from onboarding.errors import InvalidArgument, InvalidTransition, NotFound, RequestFrozen
from onboarding.models import (
    BusinessType,
    DocumentType,
    EventType,
    RequestStatus,
    RequestType,
)
from onboarding.services import document_service, timeline_service, workflow_service


class TestSubmission:

    def test_create_request_starts_submitted_with_locations(self, db_session, agent_user):
        req = submit_request(
            "Bayside Bagels",
            locations=[
                {"name": "Bayside - Marina", "address": "1 Marina Blvd", "requested_devices_count": 2},
                {"name": "Bayside - Mission", "address": "22 Mission St"},
            ],
            business_type=BusinessType.BRAND_FRANCHISOR,
            actor_user_id=agent_user.id,
        )

        assert req.status is RequestStatus.SUBMITTED
        assert req.request_type is RequestType.NEW_CLIENT
        assert req.activated_at is None
        assert [loc.name for loc in req.locations] == ["Bayside - Marina", "Bayside - Mission"]

        events = timeline_service.list_events(req.id)
        assert len(events) == 1
        assert events[0].event_type is EventType.STATUS_CHANGE
        assert "submitted" in events[0].message
        assert events[0].actor_label == "Sam Agent"

    def test_business_name_required(self, db_session):
        with pytest.raises(InvalidArgument):
            workflow_service.create_request(business_name="")

    def test_get_unknown_request(self, db_session):
        with pytest.raises(NotFound):
            workflow_service.request_detail(424242)


class TestQueue:

    def test_list_filters_by_status_and_search(self, db_session):
        a = submit_request("Alpha Tacos")
        submit_request("Beta Burgers")
        document_service.request_documents(a.id, [DocumentType.IDENTITY], channels=[])

        rows, total = workflow_service.list_requests(statuses=[RequestStatus.WAITING_DOCS])
        assert total == 1
        assert rows[0].id == a.id

        rows, total = workflow_service.list_requests(search="burg")
        assert [r.business_name for r in rows] == ["Beta Burgers"]

    def test_summary_badges(self, db_session):
        req = submit_request("Gamma Gyros", locations=[
            {"name": "Gamma - Downtown", "requested_devices_count": 2},
        ])
        summary = workflow_service.summarize(req)
        assert summary["docs_badge"] == "pending"
        assert summary["devices_badge"] == "pending"
        assert summary["shipping_badge"] == "pending"
        assert summary["location_count"] == 1
        assert summary["age"] == "0m"


class TestTransitions:

    def test_claim_moves_to_in_review_and_assigns(self, db_session, agent_user):
        req = submit_request()
        claimed = workflow_service.claim_request(req.id, actor_user_id=agent_user.id)

        assert claimed.status is RequestStatus.IN_REVIEW
        assert claimed.assigned_user_id == agent_user.id
        assert claimed.last_status_at is not None
        latest = timeline_service.list_events(req.id)[0]
        assert latest.event_type is EventType.STATUS_CHANGE
        assert "In Review" in latest.message

    def test_claim_twice_is_invalid(self, db_session, agent_user):
        req = submit_request()
        workflow_service.claim_request(req.id, actor_user_id=agent_user.id)
        with pytest.raises(InvalidTransition):
            workflow_service.claim_request(req.id, actor_user_id=agent_user.id)

    def test_approve_requires_waiting_docs(self, db_session, admin_user):
        req = submit_request()
        with pytest.raises(InvalidTransition):
            workflow_service.approve_request(req.id, actor_user_id=admin_user.id)

        document_service.request_documents(req.id, [DocumentType.IDENTITY], channels=[])
        approved = workflow_service.approve_request(req.id, actor_user_id=admin_user.id)
        assert approved.status is RequestStatus.APPROVED
        assert approved.approved_at is not None

    def test_document_request_never_moves_status_backwards(self, db_session, admin_user):
        req = submit_request()
        document_service.request_documents(req.id, [DocumentType.IDENTITY], channels=[])
        workflow_service.approve_request(req.id, actor_user_id=admin_user.id)

        document_service.request_documents(req.id, [DocumentType.LEASE], channels=[])
        assert workflow_service.request_detail(req.id)["status"] == "APPROVED"

    def test_reject_from_any_non_terminal_state(self, db_session, admin_user):
        req = submit_request()
        workflow_service.claim_request(req.id, actor_user_id=admin_user.id)
        rejected = workflow_service.reject_request(req.id, reason="Duplicate application", actor_user_id=admin_user.id)

        assert rejected.status is RequestStatus.REJECTED
        assert rejected.rejection_reason == "Duplicate application"
        assert rejected.rejected_at is not None

    def test_reject_is_terminal(self, db_session, admin_user):
        req = submit_request()
        workflow_service.reject_request(req.id, reason="Fraud check failed")
        with pytest.raises(RequestFrozen):
            workflow_service.reject_request(req.id, reason="again")
        with pytest.raises(RequestFrozen):
            workflow_service.claim_request(req.id, actor_user_id=admin_user.id)

    def test_transition_table_has_no_backward_edges(self):
        order = list(RequestStatus)
        for status, targets in workflow_service.TRANSITIONS.items():
            for target in targets:
                if target is RequestStatus.REJECTED:
                    continue
                assert order.index(target) > order.index(status)
        assert workflow_service.TRANSITIONS[RequestStatus.ACTIVE] == frozenset()
        assert workflow_service.TRANSITIONS[RequestStatus.REJECTED] == frozenset()
