# Overview: Pytest coverage for the read-only state of ACTIVE and REJECTED requests.

"""
Once a request is ACTIVE or REJECTED, every child mutation must raise
RequestFrozen and leave the database untouched. Reads keep working.
"""

import pytest

from conftest import submit_request
from onboarding.errors import RequestFrozen
from onboarding.models import (
    DocumentType,
    RequestEvent,
    ShipmentStatus,
)
from onboarding.services import (
    device_service,
    document_service,
    materialization_service,
    shipment_service,
    timeline_service,
    workflow_service,
)
from onboarding.services.device_service import DeviceDescriptor


def _seed_children(request_id):
    """One of each child record, created while the request is still open."""
    device = device_service.assign_device(request_id, DeviceDescriptor(serial_number="SN-F1"))
    doc = document_service.upload_document(request_id, DocumentType.IDENTITY, "s3://docs/id.png")
    shipment = shipment_service.create_shipment(request_id, carrier="UPS")
    return device.id, doc.id, shipment.id


def _mutations(request_id, device_id, doc_id, shipment_id):
    return {
        "request_documents": lambda: document_service.request_documents(
            request_id, [DocumentType.LEASE], channels=[]
        ),
        "upload_document": lambda: document_service.upload_document(
            request_id, DocumentType.LEASE, "s3://docs/lease.pdf"
        ),
        "verify_document": lambda: document_service.verify_document(doc_id, approve=True),
        "assign_device": lambda: device_service.assign_device(
            request_id, DeviceDescriptor(serial_number="SN-F2")
        ),
        "remove_device": lambda: device_service.remove_device(request_id, device_id),
        "create_shipment": lambda: shipment_service.create_shipment(request_id),
        "update_shipment": lambda: shipment_service.update_shipment_status(
            request_id, shipment_id, ShipmentStatus.DELIVERED
        ),
        "add_note": lambda: timeline_service.add_note(request_id, "late note"),
        "add_location": lambda: materialization_service.add_location(request_id, name="Late Location"),
        "materialize_account": lambda: materialization_service.materialize_account(request_id),
        "materialize_locations": lambda: materialization_service.materialize_locations(request_id),
        "claim": lambda: workflow_service.claim_request(request_id, actor_user_id=None),
        "approve": lambda: workflow_service.approve_request(request_id),
        "reject": lambda: workflow_service.reject_request(request_id, reason="again"),
    }


MUTATIONS = list(_mutations(0, 0, 0, 0))


@pytest.mark.parametrize("mutation", MUTATIONS)
def test_rejected_request_refuses_mutation(db_session, mutation):
    req = submit_request()
    ids = _seed_children(req.id)
    workflow_service.reject_request(req.id, reason="Owner withdrew")
    events_before = db_session.query(RequestEvent).filter_by(request_id=req.id).count()

    with pytest.raises(RequestFrozen) as exc:
        _mutations(req.id, *ids)[mutation]()

    assert exc.value.to_dict()["read_only"] is True
    db_session.rollback()
    assert db_session.query(RequestEvent).filter_by(request_id=req.id).count() == events_before


@pytest.mark.parametrize("mutation", MUTATIONS)
def test_active_request_refuses_mutation(db_session, mutation):
    req = submit_request()
    ids = _seed_children(req.id)
    workflow_service.evaluate_activation(req.id, force=True)

    with pytest.raises(RequestFrozen):
        _mutations(req.id, *ids)[mutation]()


def test_rejected_request_is_still_readable(db_session):
    req = submit_request()
    _seed_children(req.id)
    workflow_service.reject_request(req.id, reason="Owner withdrew")

    detail = workflow_service.request_detail(req.id)
    assert detail["status"] == "REJECTED"
    assert detail["read_only"] is True
    assert detail["rejection_reason"] == "Owner withdrew"
    assert len(detail["devices"]) == 1
    assert detail["activation"]["eligible"] is False

    events = timeline_service.list_events(req.id)
    assert "Owner withdrew" in events[0].message
    assert len(document_service.list_documents(req.id)) == 1
    assert len(shipment_service.list_shipments(req.id)) == 1
