"""
Pytest fixtures for onboarding backend tests.

Provides the in-memory test database, operator accounts, notifier doubles,
and a helper that builds a request satisfying every activation guard.
"""

import pytest

from onboarding import create_app
from onboarding.extensions import db
from onboarding.models import DocumentType, Organization, ShipmentStatus
from onboarding.services import (
    device_service,
    document_service,
    materialization_service,
    notification_service,
    shipment_service,
    workflow_service,
)
from onboarding.services.auth_service import create_operator
from onboarding.services.device_service import DeviceDescriptor


PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'ONBOARDING_STATUS_RETRY_ATTEMPTS': 3,
    'ONBOARDING_NOTIFY_CHANNELS_DEFAULT': ['EMAIL'],
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def operator_org(db_session):
    """Organization the operators belong to."""
    org = Organization(name="Platform Operations", code="OPS", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def admin_user(operator_org):
    return create_operator("admin", "admin@ops.local", PASSWORD, operator_org.id, role="admin", display_name="Ada Admin")


@pytest.fixture(scope='function')
def agent_user(operator_org):
    return create_operator("agent", "agent@ops.local", PASSWORD, operator_org.id, role="agent", display_name="Sam Agent")


@pytest.fixture(scope='function')
def viewer_user(operator_org):
    return create_operator("viewer", "viewer@ops.local", PASSWORD, operator_org.id, role="viewer")


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, channel, recipient, subject, body):
        self.sent.append((channel, recipient, subject, body))


class FailingNotifier:
    def send(self, channel, recipient, subject, body):
        raise notification_service.NotificationError(f"{channel.value} gateway unavailable")


@pytest.fixture(scope='function')
def recording_notifier(app):
    notifier = RecordingNotifier()
    notification_service.set_notifier(app, notifier)
    yield notifier
    notification_service.set_notifier(app, None)


@pytest.fixture(scope='function')
def failing_notifier(app):
    notifier = FailingNotifier()
    notification_service.set_notifier(app, notifier)
    yield notifier
    notification_service.set_notifier(app, None)


def submit_request(business_name="Harbor Coffee", locations=None, **kwargs):
    """Submit a NEW_CLIENT request with one proposed location by default."""
    if locations is None:
        locations = [{"name": f"{business_name} - Pier 39", "address": "Pier 39, San Francisco, CA"}]
    kwargs.setdefault("owner_email", "owner@harbor.example")
    kwargs.setdefault("owner_phone", "+14155550100")
    return workflow_service.create_request(business_name=business_name, locations=locations, **kwargs)


def build_ready_request(business_name="Harbor Coffee", actor_user_id=None) -> int:
    """
    Build a request that passes every activation guard.

    Account linked, location materialized, one device, one verified document,
    one delivered shipment. Returns the request id.
    """
    req = submit_request(business_name)
    request_id = req.id

    materialization_service.materialize_account(request_id, actor_user_id=actor_user_id)
    materialization_service.materialize_locations(request_id, actor_user_id=actor_user_id)
    device_service.assign_device(
        request_id,
        DeviceDescriptor(model="PAX A920", serial_number="SN-0001"),
        actor_user_id=actor_user_id,
    )

    document_service.request_documents(request_id, [DocumentType.TAX_ID], channels=[], actor_user_id=actor_user_id)
    doc = document_service.upload_document(request_id, DocumentType.TAX_ID, "s3://docs/fein.pdf")
    document_service.verify_document(doc.id, approve=True, actor_user_id=actor_user_id)

    shipment = shipment_service.create_shipment(request_id, carrier="UPS", tracking_number="1Z999AA10123456784")
    shipment_service.update_shipment_status(request_id, shipment.id, ShipmentStatus.DELIVERED)
    return request_id


@pytest.fixture(scope='function')
def ready_request_id(db_session):
    return build_ready_request()


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
