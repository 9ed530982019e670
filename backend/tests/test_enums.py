# Overview: Pytest coverage for enum codes, labels and input parsing.

"""
The integer codes are what stored rows contain. These tests pin them so a
reordering of members can never silently reinterpret existing data.
"""

import pytest

from onboarding.errors import InvalidArgument
from onboarding.extensions import db
from onboarding.models import (
    AssignmentStatus,
    DeliveryChannel,
    DocumentStatus,
    DocumentType,
    EventType,
    OnboardingRequest,
    RequestStatus,
    RequestType,
    ShipmentStatus,
)
from onboarding.validation import parse_enum_list


@pytest.mark.parametrize("enum_cls, expected", [
    (RequestType, {"NEW_CLIENT": 0, "ADD_LOCATION": 1, "DEVICE_CHANGE": 2}),
    (RequestStatus, {
        "SUBMITTED": 0, "IN_REVIEW": 1, "WAITING_DOCS": 2, "APPROVED": 3,
        "SHIPPED": 4, "ACTIVE": 5, "REJECTED": 6,
    }),
    (DocumentType, {"IDENTITY": 0, "TAX_ID": 1, "BANK_VOID_CHECK": 2, "LEASE": 3, "OTHER": 4}),
    (DocumentStatus, {"MISSING": 0, "UPLOADED": 1, "VERIFIED": 2, "REJECTED": 3}),
    (AssignmentStatus, {"RESERVED": 0, "ASSIGNED": 1, "REMOVED": 2}),
    (ShipmentStatus, {"CREATED": 0, "PACKED": 1, "SHIPPED": 2, "DELIVERED": 3}),
    (EventType, {
        "STATUS_CHANGE": 0, "NOTE": 1, "DOC_REQUEST": 2, "DOC_UPLOADED": 3,
        "DOC_VERIFIED": 4, "DEVICE_ASSIGNED": 5, "SHIPMENT_CREATED": 6, "ACTIVATED": 7,
    }),
])
def test_persisted_codes_are_stable(enum_cls, expected):
    assert {m.name: int(m) for m in enum_cls} == expected


def test_labels():
    assert DocumentType.TAX_ID.label == "FEIN Letter"
    assert DocumentType.BANK_VOID_CHECK.label == "Voided Check"
    assert RequestStatus.WAITING_DOCS.label == "Waiting Docs"
    assert EventType.DOC_REQUEST.label == "Documents Requested"
    assert DocumentStatus.label_map() == {0: "Missing", 1: "Uploaded", 2: "Verified", 3: "Rejected"}


@pytest.mark.parametrize("raw", [1, "1", "tax_id", "TAX-ID", " Tax Id ", DocumentType.TAX_ID])
def test_parse_accepts_codes_and_names(raw):
    assert DocumentType.parse(raw) is DocumentType.TAX_ID


@pytest.mark.parametrize("raw", [None, 99, "PASSPORT", True, 1.5, ""])
def test_parse_rejects_unknown_values(raw):
    with pytest.raises(InvalidArgument) as exc:
        DocumentType.parse(raw, field="doc_type")
    assert "doc_type" in str(exc.value)


def test_terminal_statuses():
    assert {s for s in RequestStatus if s.is_terminal} == {RequestStatus.ACTIVE, RequestStatus.REJECTED}


def test_delivery_channel_parse():
    assert DeliveryChannel.parse("sms") is DeliveryChannel.SMS
    with pytest.raises(InvalidArgument):
        DeliveryChannel.parse("fax")


def test_parse_enum_list_keeps_order_and_drops_repeats():
    parsed = parse_enum_list(DocumentType, ["LEASE", 0, "lease", "IDENTITY"], field="doc_types")
    assert parsed == [DocumentType.LEASE, DocumentType.IDENTITY]


@pytest.mark.parametrize("raw", [{"IDENTITY": 1}, {"IDENTITY"}, (t for t in ["IDENTITY"])])
def test_parse_enum_list_rejects_non_lists(raw):
    with pytest.raises(InvalidArgument):
        parse_enum_list(DocumentType, raw, field="doc_types")


def test_enum_columns_store_integers(db_session):
    req = OnboardingRequest(business_name="Raw Check", request_type=RequestType.ADD_LOCATION)
    db_session.add(req)
    db_session.commit()

    row = db_session.execute(
        db.text("SELECT request_type, status FROM onboarding_requests WHERE id = :id"),
        {"id": req.id},
    ).one()
    assert tuple(row) == (1, 0)

    db_session.expire_all()
    loaded = db_session.get(OnboardingRequest, req.id)
    assert loaded.request_type is RequestType.ADD_LOCATION
    assert loaded.status is RequestStatus.SUBMITTED
