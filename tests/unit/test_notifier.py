import uuid

import pytest

from app.laptrack.core.metrics import metrics
from app.laptrack.db.models import PickupForm, Shipment
from app.laptrack.services import notifier as notifier_module
from app.laptrack.services.notifier import (
    EmailNotifier,
    LoggingTransport,
    NotificationError,
    NotificationKind,
    dispatch_notification,
)
from tests.laptrack_helpers import create_company, pickup_fields


class _RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = []

    def send_pickup_confirmation(self, shipment_id):
        self.calls.append(("pickup_confirmation", shipment_id))
        if self.fail:
            raise NotificationError("smtp down")

    def send_warehouse_pre_alert(self, shipment_id):
        self.calls.append(("warehouse_pre_alert", shipment_id))

    def send_release_notification(self, shipment_id):
        self.calls.append(("release_notification", shipment_id))

    def send_delivery_confirmation(self, shipment_id):
        self.calls.append(("delivery_confirmation", shipment_id))


@pytest.fixture()
def notifications_enabled(monkeypatch):
    monkeypatch.setattr(notifier_module.settings, "NOTIFICATIONS_ENABLED", True)


def test_dispatch_calls_matching_sender(notifications_enabled):
    notifier = _RecordingNotifier()
    shipment_id = uuid.uuid4()

    assert dispatch_notification(notifier, NotificationKind.RELEASE_NOTIFICATION, shipment_id) is True
    assert notifier.calls == [("release_notification", shipment_id)]


def test_dispatch_swallows_and_counts_failures(notifications_enabled):
    metrics.reset()
    notifier = _RecordingNotifier(fail=True)

    sent = dispatch_notification(notifier, NotificationKind.PICKUP_CONFIRMATION, uuid.uuid4())

    assert sent is False
    if metrics.enabled:
        content = metrics.render().content.decode("utf-8")
        assert 'notification_failures_total{kind="pickup_confirmation"} 1.0' in content


def test_dispatch_skips_when_disabled(monkeypatch):
    monkeypatch.setattr(notifier_module.settings, "NOTIFICATIONS_ENABLED", False)
    notifier = _RecordingNotifier()

    assert dispatch_notification(notifier, NotificationKind.PICKUP_CONFIRMATION, uuid.uuid4()) is False
    assert dispatch_notification(None, NotificationKind.PICKUP_CONFIRMATION, uuid.uuid4()) is False
    assert notifier.calls == []


def _shipment_with_form(db_session):
    company = create_company(db_session, name="Acme")
    shipment = Shipment(
        id=uuid.uuid4(),
        shipment_type="bulk_to_warehouse",
        status="pending_pickup",
        client_company_id=company.id,
        laptop_count=4,
        jira_ticket_number="SCOP-9",
    )
    db_session.add(shipment)
    db_session.flush()
    db_session.add(PickupForm(shipment_id=shipment.id, form_data=pickup_fields()))
    db_session.commit()
    return shipment


def test_pickup_confirmation_goes_to_form_contact(db_session):
    shipment = _shipment_with_form(db_session)
    transport = LoggingTransport()

    EmailNotifier(db_session, transport).send_pickup_confirmation(shipment.id)

    [message] = transport.sent
    assert message.kind == "pickup_confirmation"
    assert message.to == ["dana@acme.example"]
    assert message.subject == "Pickup confirmed for SCOP-9"
    assert "4 laptop(s)" in message.body


def test_release_without_engineer_has_no_recipient(db_session):
    shipment = _shipment_with_form(db_session)

    with pytest.raises(NotificationError):
        EmailNotifier(db_session, LoggingTransport()).send_release_notification(shipment.id)


def test_unknown_shipment(db_session):
    with pytest.raises(NotificationError):
        EmailNotifier(db_session, LoggingTransport()).send_delivery_confirmation(uuid.uuid4())
