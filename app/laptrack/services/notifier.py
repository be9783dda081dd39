"""Shipment notifications.

Each ``send_*`` call looks its data up by shipment id and hands a rendered
message to a transport. Callers go through ``dispatch_notification`` so a
failed send is logged and counted but never reaches the request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select

from app.laptrack.core.config import settings
from app.laptrack.core.logging import log_json
from app.laptrack.core.metrics import metrics
from app.laptrack.db.models import ClientCompany, PickupForm, Shipment, SoftwareEngineer
from app.laptrack.db.session import get_db
from app.laptrack.services.statuses import ShipmentStatus

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    PICKUP_CONFIRMATION = "pickup_confirmation"
    WAREHOUSE_PRE_ALERT = "warehouse_pre_alert"
    RELEASE_NOTIFICATION = "release_notification"
    DELIVERY_CONFIRMATION = "delivery_confirmation"


EMAIL_TEMPLATES = {
    NotificationKind.PICKUP_CONFIRMATION: (
        "Pickup confirmed for {jira_ticket_number}",
        "Hi {contact_name}, your pickup of {laptop_count} laptop(s) is scheduled for "
        "{pickup_date} ({pickup_time_slot}).",
    ),
    NotificationKind.WAREHOUSE_PRE_ALERT: (
        "Incoming shipment {jira_ticket_number}",
        "{laptop_count} laptop(s) from {company_name} are on the way via {courier_name} "
        "(tracking {tracking_number}).",
    ),
    NotificationKind.RELEASE_NOTIFICATION: (
        "Your laptop has shipped ({jira_ticket_number})",
        "Hi {engineer_name}, your laptop left the warehouse via {courier_name} "
        "(tracking {tracking_number}). ETA: {eta}.",
    ),
    NotificationKind.DELIVERY_CONFIRMATION: (
        "Delivered: {jira_ticket_number}",
        "Shipment {jira_ticket_number} for {company_name} was delivered.",
    ),
}


class NotificationError(Exception):
    pass


@dataclass
class EmailMessage:
    kind: str
    shipment_id: str
    to: list[str]
    subject: str
    body: str
    sender: str = field(default_factory=lambda: settings.NOTIFICATIONS_FROM_ADDRESS)


class EmailTransport(Protocol):
    def send(self, message: EmailMessage) -> None:
        ...


class LoggingTransport:
    """Writes outgoing messages to the log instead of an SMTP server."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.sent.append(message)
        log_json(
            logger,
            {
                "event": "notification_sent",
                "kind": message.kind,
                "shipment_id": message.shipment_id,
                "to": message.to,
                "subject": message.subject,
            },
        )


@runtime_checkable
class Notifier(Protocol):
    def send_pickup_confirmation(self, shipment_id: UUID) -> None:
        ...

    def send_warehouse_pre_alert(self, shipment_id: UUID) -> None:
        ...

    def send_release_notification(self, shipment_id: UUID) -> None:
        ...

    def send_delivery_confirmation(self, shipment_id: UUID) -> None:
        ...


class _SafeDict(dict):
    def __missing__(self, key):
        return "n/a"


class EmailNotifier:
    def __init__(self, db, transport: EmailTransport | None = None) -> None:
        self.db = db
        self.transport = transport or LoggingTransport()

    def _load(self, shipment_id: UUID) -> tuple[Shipment, dict]:
        shipment = self.db.get(Shipment, shipment_id)
        if shipment is None:
            raise NotificationError(f"shipment {shipment_id} not found")
        company = self.db.get(ClientCompany, shipment.client_company_id)
        engineer = (
            self.db.get(SoftwareEngineer, shipment.software_engineer_id) if shipment.software_engineer_id else None
        )
        form = self.db.execute(select(PickupForm).where(PickupForm.shipment_id == shipment.id)).scalars().first()
        delivery = shipment.delivery_details or {}
        base = {
            "jira_ticket_number": shipment.jira_ticket_number,
            "laptop_count": shipment.laptop_count,
            "courier_name": shipment.courier_name or "courier",
            "tracking_number": shipment.tracking_number or "pending",
            "company_name": company.name if company else "client",
            "company_email": company.contact_email if company else None,
            "engineer_name": engineer.name if engineer else delivery.get("engineer_name"),
            "engineer_email": engineer.email if engineer else delivery.get("engineer_email"),
            "eta": shipment.eta_to_engineer.date().isoformat() if shipment.eta_to_engineer else "pending",
        }
        context = _SafeDict({key: value for key, value in base.items() if value is not None})
        if form is not None:
            context.update({key: value for key, value in form.form_data.items() if value is not None})
        return shipment, context

    def _send(self, kind: NotificationKind, shipment_id: UUID, recipients: list[str | None], context: dict) -> None:
        to = [address for address in recipients if address]
        if not to:
            raise NotificationError(f"no recipient for {kind.value} on shipment {shipment_id}")
        subject, body = EMAIL_TEMPLATES[kind]
        self.transport.send(
            EmailMessage(
                kind=kind.value,
                shipment_id=str(shipment_id),
                to=to,
                subject=subject.format_map(context),
                body=body.format_map(context),
            )
        )

    def send_pickup_confirmation(self, shipment_id: UUID) -> None:
        _, context = self._load(shipment_id)
        self._send(NotificationKind.PICKUP_CONFIRMATION, shipment_id, [context.get("contact_email")], context)

    def send_warehouse_pre_alert(self, shipment_id: UUID) -> None:
        _, context = self._load(shipment_id)
        self._send(
            NotificationKind.WAREHOUSE_PRE_ALERT,
            shipment_id,
            [settings.NOTIFICATIONS_WAREHOUSE_ADDRESS],
            context,
        )

    def send_release_notification(self, shipment_id: UUID) -> None:
        _, context = self._load(shipment_id)
        self._send(NotificationKind.RELEASE_NOTIFICATION, shipment_id, [context.get("engineer_email")], context)

    def send_delivery_confirmation(self, shipment_id: UUID) -> None:
        _, context = self._load(shipment_id)
        self._send(
            NotificationKind.DELIVERY_CONFIRMATION,
            shipment_id,
            [context.get("company_email"), context.get("engineer_email")],
            context,
        )


_SENDERS = {
    NotificationKind.PICKUP_CONFIRMATION: "send_pickup_confirmation",
    NotificationKind.WAREHOUSE_PRE_ALERT: "send_warehouse_pre_alert",
    NotificationKind.RELEASE_NOTIFICATION: "send_release_notification",
    NotificationKind.DELIVERY_CONFIRMATION: "send_delivery_confirmation",
}

# Shipment statuses that trigger a notification once reached.
STATUS_NOTIFICATIONS = {
    ShipmentStatus.IN_TRANSIT_TO_WAREHOUSE.value: NotificationKind.WAREHOUSE_PRE_ALERT,
    ShipmentStatus.RELEASED_FROM_WAREHOUSE.value: NotificationKind.RELEASE_NOTIFICATION,
    ShipmentStatus.DELIVERED.value: NotificationKind.DELIVERY_CONFIRMATION,
}


def dispatch_notification(notifier: Notifier | None, kind: NotificationKind, shipment_id: UUID) -> bool:
    if notifier is None or not settings.NOTIFICATIONS_ENABLED:
        return False
    try:
        getattr(notifier, _SENDERS[kind])(shipment_id)
    except Exception:
        metrics.increment_notification_failure(kind.value)
        logger.exception(
            "Failed to send notification",
            extra={"kind": kind.value, "shipment_id": str(shipment_id)},
        )
        return False
    return True


def get_notifier(db=Depends(get_db)) -> Notifier:
    return EmailNotifier(db)
