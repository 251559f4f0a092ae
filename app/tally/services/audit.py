import logging

from app.tally.repos.audit import AuditRepository
from app.tally.services.ports import AuditEventPayload, AuditSinkPort

logger = logging.getLogger(__name__)

__all__ = ["AuditEventPayload", "AuditService"]


class AuditService(AuditSinkPort):
    """Best-effort audit logging.

    Strategy: failures are logged and swallowed so an audit outage never
    changes the outcome of the operation being audited.
    """

    def __init__(self, db):
        self.db = db
        self.repo = AuditRepository(db)

    def record_event(self, payload: AuditEventPayload) -> None:
        metadata = dict(payload.metadata or {})
        metadata.setdefault("actor_role", payload.actor_role)
        try:
            self.repo.add_from_payload(payload, metadata)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(
                "Failed to write audit event",
                extra={
                    "action": payload.action,
                    "trace_id": payload.trace_id,
                    "tenant_id": payload.tenant_id,
                    "entity_id": payload.entity_id,
                },
            )
