"""
Onboarding enums and their persisted integer codes.

Stored rows hold small integers; the values below are the compatibility
contract with existing data and must never be renumbered. Labels are what
operator screens show.
"""

from __future__ import annotations

import enum

from sqlalchemy import Integer
from sqlalchemy.types import TypeDecorator

from ..errors import InvalidArgument


class LabeledIntEnum(enum.IntEnum):
    """IntEnum with a human label and lenient parsing of client input."""

    @property
    def label(self) -> str:
        return self.__class__._labels().get(self.name, self.name.replace("_", " ").title())

    @classmethod
    def _labels(cls) -> dict[str, str]:
        return {}

    @classmethod
    def parse(cls, value, *, field: str | None = None):
        """
        Accept a member, its integer code, or its name (case-insensitive).

        Raises InvalidArgument for anything else.
        """
        field = field or cls.__name__
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidArgument(f"{field} must be one of: {cls.choices()}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidArgument(f"{field} must be one of: {cls.choices()}") from None
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_").replace(" ", "_")
            if key.isdigit():
                return cls.parse(int(key), field=field)
            member = cls.__members__.get(key)
            if member is not None:
                return member
        raise InvalidArgument(f"{field} must be one of: {cls.choices()}")

    @classmethod
    def choices(cls) -> str:
        return ", ".join(cls.__members__.keys())

    @classmethod
    def label_map(cls) -> dict[int, str]:
        return {int(m): m.label for m in cls}

    def to_dict(self) -> dict:
        return {"code": int(self), "name": self.name, "label": self.label}


class RequestType(LabeledIntEnum):
    NEW_CLIENT = 0
    ADD_LOCATION = 1
    DEVICE_CHANGE = 2

    @classmethod
    def _labels(cls):
        return {"NEW_CLIENT": "New Client", "ADD_LOCATION": "Add Location", "DEVICE_CHANGE": "Device Change"}


class BusinessType(LabeledIntEnum):
    BRAND_FRANCHISOR = 0
    MULTI_LOCATION_OWNER = 1

    @classmethod
    def _labels(cls):
        return {"BRAND_FRANCHISOR": "Brand / Franchisor", "MULTI_LOCATION_OWNER": "Multi-Store Owner"}


class RequestStatus(LabeledIntEnum):
    SUBMITTED = 0
    IN_REVIEW = 1
    WAITING_DOCS = 2
    APPROVED = 3
    SHIPPED = 4
    ACTIVE = 5
    REJECTED = 6

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.ACTIVE, RequestStatus.REJECTED)


class DocumentType(LabeledIntEnum):
    IDENTITY = 0
    TAX_ID = 1
    BANK_VOID_CHECK = 2
    LEASE = 3
    OTHER = 4

    @classmethod
    def _labels(cls):
        return {
            "IDENTITY": "Driver License / ID",
            "TAX_ID": "FEIN Letter",
            "BANK_VOID_CHECK": "Voided Check",
            "LEASE": "Lease Agreement",
            "OTHER": "Other",
        }


class DocumentStatus(LabeledIntEnum):
    MISSING = 0
    UPLOADED = 1
    VERIFIED = 2
    REJECTED = 3


class DeviceType(LabeledIntEnum):
    TERMINAL = 0
    PIN_PAD = 1
    RECEIPT_PRINTER = 2
    CASH_DRAWER = 3
    SCANNER = 4
    OTHER = 5

    @classmethod
    def _labels(cls):
        return {"PIN_PAD": "PIN Pad", "TERMINAL": "POS Terminal"}


class AssignmentStatus(LabeledIntEnum):
    # RESERVED is defined for stored data but no creation path writes it.
    RESERVED = 0
    ASSIGNED = 1
    REMOVED = 2


class ShipmentStatus(LabeledIntEnum):
    CREATED = 0
    PACKED = 1
    SHIPPED = 2
    DELIVERED = 3


class EventType(LabeledIntEnum):
    STATUS_CHANGE = 0
    NOTE = 1
    DOC_REQUEST = 2
    DOC_UPLOADED = 3
    DOC_VERIFIED = 4
    DEVICE_ASSIGNED = 5
    SHIPMENT_CREATED = 6
    ACTIVATED = 7

    @classmethod
    def _labels(cls):
        return {
            "STATUS_CHANGE": "Status Change",
            "DOC_REQUEST": "Documents Requested",
            "DOC_UPLOADED": "Document Uploaded",
            "DOC_VERIFIED": "Document Reviewed",
            "DEVICE_ASSIGNED": "Device Assigned",
            "SHIPMENT_CREATED": "Shipment Created",
        }


class DeliveryChannel(str, enum.Enum):
    """Notification channels for document requests (never persisted)."""

    EMAIL = "EMAIL"
    SMS = "SMS"

    @classmethod
    def parse(cls, value, *, field: str = "channel"):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            member = cls.__members__.get(value.strip().upper())
            if member is not None:
                return member
        raise InvalidArgument(f"{field} must be one of: {', '.join(cls.__members__)}")


class IntEnumColumn(TypeDecorator):
    """
    Persist a LabeledIntEnum as its integer code.

    Conversion happens only here; the rest of the code works with members.
    """

    impl = Integer
    cache_ok = True

    def __init__(self, enum_cls: type[LabeledIntEnum], *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_cls = enum_cls

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, self.enum_cls):
            return int(value)
        # Anything else must already be a valid code for this enum
        return int(self.enum_cls.parse(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self.enum_cls(value)

    def copy(self, **kw):
        return IntEnumColumn(self.enum_cls)
