from datetime import datetime

from app.tally.db.models import AuditEvent
from app.tally.services.ports import AuditEventPayload


class AuditRepository:
    """Stages audit rows; the caller owns the commit."""

    def __init__(self, db):
        self.db = db

    def add_from_payload(self, payload: AuditEventPayload, metadata: dict) -> AuditEvent:
        event = AuditEvent(
            tenant_id=payload.tenant_id,
            user_id=payload.user_id,
            trace_id=payload.trace_id,
            actor=payload.actor,
            action=payload.action,
            entity_type=payload.entity_type or "unknown",
            entity_id=payload.entity_id,
            before_payload=payload.before,
            after_payload=payload.after,
            event_metadata=metadata,
            result=payload.result,
            created_at=datetime.utcnow(),
        )
        self.db.add(event)
        self.db.flush()
        return event
