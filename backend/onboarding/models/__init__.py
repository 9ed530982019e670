from .tenancy import Organization, Store
from .auth import User, SessionToken
from .requests import (
    OnboardingRequest,
    RequestLocation,
    RequestDocument,
    RequestDevice,
    Shipment,
    RequestEvent,
    Pending,
    Materialized,
)
from .enums import (
    RequestType,
    BusinessType,
    RequestStatus,
    DocumentType,
    DocumentStatus,
    DeviceType,
    AssignmentStatus,
    ShipmentStatus,
    EventType,
    DeliveryChannel,
)

__all__ = [
    'Organization', 'Store',
    'User', 'SessionToken',
    'OnboardingRequest', 'RequestLocation', 'RequestDocument', 'RequestDevice',
    'Shipment', 'RequestEvent', 'Pending', 'Materialized',
    'RequestType', 'BusinessType', 'RequestStatus', 'DocumentType', 'DocumentStatus',
    'DeviceType', 'AssignmentStatus', 'ShipmentStatus', 'EventType', 'DeliveryChannel',
]
