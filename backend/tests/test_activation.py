# Overview: Pytest coverage for activation guards, idempotency and concurrent activation.

"""
Activation Tests

Covers:
- The full ordered checklist of unmet guards (never just the first)
- Successful activation and its side effects on the account and stores
- Idempotent re-activation
- Forced activation
- Lost optimistic-lock races (retry to idempotent success, or Conflict)
"""

import pytest
from sqlalchemy import create_engine, insert, update
from sqlalchemy.orm.exc import StaleDataError

from conftest import TEST_CONFIG, build_ready_request, submit_request
from onboarding import create_app
from onboarding.errors import ActivationBlocked, Conflict, RequestFrozen
from onboarding.extensions import db
from onboarding.models import (
    DocumentType,
    EventType,
    OnboardingRequest,
    Organization,
    RequestEvent,
    RequestStatus,
    Store,
)
from onboarding.services import (
    document_service,
    shipment_service,
    timeline_service,
    workflow_service,
)
from onboarding.services.concurrency import run_with_retry
from onboarding.time_utils import utcnow


def _codes(issues):
    return [issue["code"] for issue in issues]


class TestActivationGuards:

    def test_fresh_request_lists_every_unmet_condition(self, db_session):
        req = submit_request()
        document_service.request_documents(req.id, [DocumentType.IDENTITY], channels=[])

        with pytest.raises(ActivationBlocked) as exc:
            workflow_service.evaluate_activation(req.id)

        assert _codes(exc.value.issues) == [
            "DOCUMENT_NOT_VERIFIED",
            "NO_ACTIVE_DEVICE",
            "LOCATION_NOT_MATERIALIZED",
            "ACCOUNT_NOT_LINKED",
        ]
        assert exc.value.to_dict()["code"] == "ACTIVATION_BLOCKED"

        reloaded = workflow_service.request_detail(req.id)
        assert reloaded["status"] == "WAITING_DOCS"
        assert reloaded["activated_at"] is None
        assert timeline_service.count_events(req.id, EventType.ACTIVATED) == 0

    def test_two_unverified_documents_and_undelivered_shipment(self, db_session, ready_request_id):
        document_service.request_documents(
            ready_request_id, [DocumentType.IDENTITY, DocumentType.BANK_VOID_CHECK], channels=[]
        )
        shipment_service.create_shipment(ready_request_id, carrier="FedEx", tracking_number="7712")

        with pytest.raises(ActivationBlocked) as exc:
            workflow_service.evaluate_activation(ready_request_id)

        issues = exc.value.issues
        assert len(issues) == 3
        assert _codes(issues) == ["SHIPMENT_NOT_DELIVERED", "DOCUMENT_NOT_VERIFIED", "DOCUMENT_NOT_VERIFIED"]
        assert all(issue["entity_id"] is not None for issue in issues)

    def test_removed_devices_do_not_count(self, db_session, ready_request_id):
        from onboarding.services import device_service

        device = device_service.list_devices(ready_request_id)[0]
        device_service.remove_device(ready_request_id, device.id, reason="Wrong model")

        preview = workflow_service.preview_activation(ready_request_id)
        assert preview["eligible"] is False
        assert _codes(preview["issues"]) == ["NO_ACTIVE_DEVICE"]

    def test_guards_follow_the_satisfaction_predicates(self, db_session, ready_request_id, monkeypatch):
        document_service.request_documents(ready_request_id, [DocumentType.IDENTITY], channels=[])
        shipment_service.create_shipment(ready_request_id, tracking_number="7712")
        assert _codes(workflow_service.preview_activation(ready_request_id)["issues"]) == [
            "SHIPMENT_NOT_DELIVERED",
            "DOCUMENT_NOT_VERIFIED",
        ]

        monkeypatch.setattr(workflow_service, "shipments_satisfied", lambda shipments: True)
        monkeypatch.setattr(workflow_service, "documents_satisfied", lambda documents: True)
        assert workflow_service.preview_activation(ready_request_id)["eligible"] is True

    def test_preview_writes_nothing(self, db_session, ready_request_id):
        before = timeline_service.count_events(ready_request_id, EventType.ACTIVATED)
        preview = workflow_service.preview_activation(ready_request_id)
        assert preview == {
            "request_id": ready_request_id,
            "status": "WAITING_DOCS",
            "eligible": True,
            "issues": [],
        }
        assert timeline_service.count_events(ready_request_id, EventType.ACTIVATED) == before


class TestActivationSuccess:

    def test_activates_request_account_and_stores(self, db_session, ready_request_id):
        result = workflow_service.evaluate_activation(ready_request_id)

        assert result.activated is True
        assert result.already_active is False
        req = db_session.get(OnboardingRequest, ready_request_id)
        assert req.status is RequestStatus.ACTIVE
        assert req.activated_at is not None

        org = db_session.get(Organization, req.organization_id)
        assert org.is_active is True
        assert org.activated_at is not None
        stores = db_session.query(Store).filter_by(org_id=org.id).all()
        assert [s.provisioning_status for s in stores] == ["ACTIVE"]

        assert timeline_service.count_events(ready_request_id, EventType.ACTIVATED) == 1
        assert timeline_service.list_events(ready_request_id)[0].event_type is EventType.ACTIVATED

    def test_second_activation_is_idempotent(self, db_session, ready_request_id):
        first = workflow_service.evaluate_activation(ready_request_id)
        second = workflow_service.evaluate_activation(ready_request_id)

        assert first.activated is True
        assert second.activated is False
        assert second.already_active is True
        assert second.request.activated_at == first.request.activated_at
        assert timeline_service.count_events(ready_request_id, EventType.ACTIVATED) == 1

    def test_forced_activation_bypasses_guards(self, db_session):
        req = submit_request()
        result = workflow_service.evaluate_activation(req.id, force=True)

        assert result.activated is True
        assert result.forced is True
        assert "ACCOUNT_NOT_LINKED" in _codes(result.bypassed_issues)
        assert result.request.status is RequestStatus.ACTIVE
        event = timeline_service.list_events(req.id, event_type=EventType.ACTIVATED)[0]
        assert "forced" in event.message

    def test_rejected_request_cannot_activate(self, db_session, ready_request_id):
        workflow_service.reject_request(ready_request_id, reason="Owner withdrew")
        with pytest.raises(RequestFrozen):
            workflow_service.evaluate_activation(ready_request_id, force=True)


class TestActivationConcurrency:

    def test_run_with_retry_turns_exhausted_stale_data_into_conflict(self, db_session):
        calls = []

        def _always_stale():
            calls.append(1)
            raise StaleDataError("version mismatch")

        with pytest.raises(Conflict):
            run_with_retry(_always_stale, attempts=2, backoff_base=0)
        assert len(calls) == 2

    def test_lost_race_retries_and_returns_idempotent_success(self, tmp_path, monkeypatch):
        """
        A second writer activates the request (and bumps version_id) between
        our guard evaluation and our flush. Our status write must lose the
        compare-and-swap, retry from a fresh read and report already-active.
        """
        url = f"sqlite:///{tmp_path / 'race.sqlite3'}"
        race_app = create_app({**TEST_CONFIG, "SQLALCHEMY_DATABASE_URI": url})

        with race_app.app_context():
            db.create_all()
            request_id = build_ready_request()

            other_writer = create_engine(url)
            original = workflow_service.collect_activation_issues
            raced = []

            def _racing_guards(req):
                issues = original(req)
                if not raced:
                    raced.append(1)
                    now = utcnow()
                    with other_writer.begin() as conn:
                        conn.execute(
                            update(OnboardingRequest.__table__)
                            .where(OnboardingRequest.__table__.c.id == request_id)
                            .values(
                                status=int(RequestStatus.ACTIVE),
                                activated_at=now,
                                version_id=OnboardingRequest.__table__.c.version_id + 1,
                            )
                        )
                        conn.execute(
                            insert(RequestEvent.__table__).values(
                                request_id=request_id,
                                event_type=int(EventType.ACTIVATED),
                                message="Request activated by concurrent writer",
                                actor_label="System",
                                created_at=now,
                            )
                        )
                return issues

            monkeypatch.setattr(workflow_service, "collect_activation_issues", _racing_guards)

            result = workflow_service.evaluate_activation(request_id)

            assert raced == [1]
            assert result.activated is False
            assert result.already_active is True
            assert result.request.status is RequestStatus.ACTIVE
            assert timeline_service.count_events(request_id, EventType.ACTIVATED) == 1

            other_writer.dispose()
            db.session.remove()
            db.drop_all()

    def test_race_lost_on_every_attempt_raises_conflict(self, db_session, ready_request_id, monkeypatch):
        """Every attempt sees version_id bumped under it; nothing is written."""
        table = OnboardingRequest.__table__
        original = workflow_service.collect_activation_issues
        attempts = []

        def _bump_version(req):
            attempts.append(1)
            db.session.execute(
                update(table).where(table.c.id == req.id).values(version_id=table.c.version_id + 1)
            )
            return original(req)

        monkeypatch.setattr(workflow_service, "collect_activation_issues", _bump_version)
        with pytest.raises(Conflict):
            workflow_service.evaluate_activation(ready_request_id)
        monkeypatch.undo()

        assert len(attempts) == 3
        assert timeline_service.count_events(ready_request_id, EventType.ACTIVATED) == 0
        assert workflow_service.request_detail(ready_request_id)["status"] == "WAITING_DOCS"
