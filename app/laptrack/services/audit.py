import logging
from dataclasses import dataclass
from datetime import datetime

from app.laptrack.core.metrics import metrics
from app.laptrack.db.models import AuditEvent
from app.laptrack.repos.audit import AuditRepository

logger = logging.getLogger(__name__)


@dataclass
class AuditEventPayload:
    user_id: str | None
    trace_id: str | None
    actor: str
    action: str
    entity_type: str | None
    entity_id: str | None
    before: dict | None
    after: dict | None
    metadata: dict | None
    result: str
    actor_role: str | None = None


class AuditService:
    """Best-effort audit logging.

    The audited operation is committed before the event is written, so a
    failed write is logged and rolled back on its own without touching it.
    """

    def __init__(self, db):
        self.db = db
        self.repo = AuditRepository(db)

    def record_event(self, payload: AuditEventPayload) -> None:
        try:
            event = AuditEvent(
                user_id=payload.user_id,
                actor=payload.actor,
                actor_role=payload.actor_role,
                trace_id=payload.trace_id,
                action=payload.action,
                entity_type=payload.entity_type or "unknown",
                entity_id=payload.entity_id,
                before_payload=payload.before,
                after_payload=payload.after,
                event_metadata=payload.metadata,
                result=payload.result,
                created_at=datetime.utcnow(),
            )
            self.repo.create(event)
        except Exception:
            self.db.rollback()
            metrics.increment_audit_failure()
            logger.exception(
                "Failed to write audit event",
                extra={
                    "action": payload.action,
                    "trace_id": payload.trace_id,
                    "entity_id": payload.entity_id,
                },
            )


def audit_payload(
    actor,
    *,
    action: str,
    entity_type: str,
    entity_id,
    trace_id: str | None,
    before: dict | None = None,
    after: dict | None = None,
    metadata: dict | None = None,
    result: str = "success",
) -> AuditEventPayload:
    """Build a payload for an authenticated user acting on one entity."""
    return AuditEventPayload(
        user_id=str(actor.id) if actor is not None else None,
        trace_id=trace_id or None,
        actor=actor.username if actor is not None else "system",
        actor_role=actor.role if actor is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        before=before,
        after=after,
        metadata=metadata,
        result=result,
    )
