from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from app.tally.core.config import settings
from app.tally.core.context import RequestContext
from app.tally.core.error_catalog import (
    AppError,
    BusinessRuleViolationError,
    ConcurrencyError,
    ErrorCatalog,
    NotFoundError,
    ValidationError,
)
from app.tally.core.logging import log_json
from app.tally.core.metrics import metrics
from app.tally.db.models import StockCountLine, StockCountSession
from app.tally.repos.catalog import CatalogRepository
from app.tally.repos.stock_counts import StockCountQueryFilters, StockCountRepository
from app.tally.services.authorization import AuthorizationGate, Role
from app.tally.services.concurrency import ChangeReport, ConcurrencyDetector
from app.tally.services.ports import (
    AdjustmentRecorderPort,
    AuditEventPayload,
    AuditSinkPort,
    InventoryLedgerPort,
    LowStockNotifierPort,
    UnitOfWork,
)
from app.tally.services.reconciliation import CompletionResult, ReconciliationEngine
from app.tally.services.session_state import (
    SessionStatus,
    ensure_deletable,
    ensure_editable,
    ensure_transition,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineResult:
    line_id: uuid.UUID
    variance: int
    created: bool


@dataclass(frozen=True)
class SessionPage:
    rows: list[StockCountSession]
    line_counts: dict
    total: int
    page: int
    page_size: int


@dataclass(frozen=True)
class SessionDetail:
    session: StockCountSession
    lines: list[StockCountLine]


def validate_counted_quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Counted quantity must be a whole number", details={"counted_quantity": value})
    if value < 0:
        raise ValidationError("Counted quantity cannot be negative", details={"counted_quantity": value})
    return value


def _as_uuid(value, entity: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise NotFoundError(entity, value) from exc


def _line_snapshot(line: StockCountLine) -> dict:
    return {
        "item_id": str(line.item_id),
        "counted_quantity": line.counted_quantity,
        "system_quantity": line.system_quantity,
        "variance": line.variance,
        "notes": line.notes,
    }


@dataclass(frozen=True)
class _LineChange:
    result: LineResult
    session_id: uuid.UUID
    before: dict | None
    after: dict


def _line_change(line: StockCountLine, before: dict | None, *, created: bool) -> _LineChange:
    return _LineChange(
        result=LineResult(line_id=line.id, variance=line.variance, created=created),
        session_id=line.session_id,
        before=before,
        after=_line_snapshot(line),
    )


class StockCountService:
    """Stock count sessions: lifecycle, count lines and the reconciling commit.

    Every mutation runs inside the unit of work; audit events and low stock
    alerts are dispatched only after it commits.
    """

    def __init__(
        self,
        *,
        sessions: StockCountRepository,
        catalog: CatalogRepository,
        ledger: InventoryLedgerPort,
        recorder: AdjustmentRecorderPort,
        audit: AuditSinkPort,
        notifier: LowStockNotifierPort,
        uow: UnitOfWork,
    ):
        self.sessions = sessions
        self.catalog = catalog
        self.ledger = ledger
        self.audit = audit
        self.notifier = notifier
        self.uow = uow
        self.detector = ConcurrencyDetector(ledger)
        self.engine = ReconciliationEngine(ledger, recorder)

    # -- helpers --------------------------------------------------------

    @staticmethod
    def _tenant_id(context: RequestContext) -> uuid.UUID:
        if not context.tenant_id:
            raise AppError(ErrorCatalog.TENANT_SCOPE_REQUIRED)
        return uuid.UUID(str(context.tenant_id))

    @staticmethod
    def _actor_id(gate: AuthorizationGate) -> uuid.UUID:
        actor = gate.require_actor()
        try:
            return uuid.UUID(str(actor))
        except ValueError as exc:
            raise ValidationError("User ID is invalid", details={"user_id": actor}) from exc

    def _load_session(self, session_id, tenant_id: uuid.UUID, *, for_update: bool = False) -> StockCountSession:
        session_uuid = _as_uuid(session_id, "Stock count session")
        session = self.sessions.get_session(session_uuid, tenant_id, for_update=for_update)
        if session is None:
            raise NotFoundError("Stock count session", session_id)
        return session

    def _load_line(self, line_id, tenant_id: uuid.UUID) -> StockCountLine:
        line_uuid = _as_uuid(line_id, "Stock count line")
        line = self.sessions.get_line_in_tenant(line_uuid, tenant_id)
        if line is None:
            raise NotFoundError("Stock count line", line_id)
        return line

    def _audit(
        self,
        context: RequestContext,
        action: str,
        entity_type: str,
        entity_id,
        *,
        before: dict | None = None,
        after: dict | None = None,
        metadata: dict | None = None,
    ) -> None:
        try:
            self.audit.record_event(
                AuditEventPayload(
                    tenant_id=str(context.tenant_id),
                    user_id=context.user_id,
                    trace_id=context.trace_id,
                    actor=context.user_id or "system",
                    action=action,
                    entity_type=entity_type,
                    entity_id=str(entity_id) if entity_id is not None else None,
                    before=before,
                    after=after,
                    metadata=metadata,
                    result="success",
                    actor_role=context.role,
                )
            )
        except Exception:
            logger.exception("Audit sink failed", extra={"action": action, "trace_id": context.trace_id})

    def _audit_line_change(self, context: RequestContext, change: _LineChange) -> None:
        self._audit(
            context,
            "stock_count_line.added" if change.result.created else "stock_count_line.updated",
            "stock_count_line",
            change.result.line_id,
            before=change.before,
            after=change.after,
            metadata={"session_id": str(change.session_id)},
        )

    def _capture_line(self, session: StockCountSession, line: StockCountLine, counted_quantity: int, notes):
        system_quantity = self.ledger.get_quantity(session.tenant_id, session.location_id, line.item_id)
        line.counted_quantity = counted_quantity
        line.system_quantity = system_quantity
        line.variance = counted_quantity - system_quantity
        if notes is not None:
            line.notes = notes
        line.updated_at = datetime.utcnow()

    # -- reads ----------------------------------------------------------

    def list_sessions(
        self,
        context: RequestContext,
        *,
        page: int = 1,
        page_size: int | None = None,
        status: str | None = None,
        location_id=None,
    ) -> SessionPage:
        AuthorizationGate(context).require_role(Role.VIEWER)
        tenant_id = self._tenant_id(context)
        if page < 1:
            raise ValidationError("page must be >= 1", details={"page": page})
        page_size = page_size or settings.STOCK_COUNT_DEFAULT_PAGE_SIZE
        if page_size < 1:
            raise ValidationError("page_size must be >= 1", details={"page_size": page_size})
        page_size = min(page_size, settings.STOCK_COUNT_MAX_PAGE_SIZE)
        if status is not None:
            try:
                status = SessionStatus(status.upper()).value
            except ValueError as exc:
                raise ValidationError("Unknown session status", details={"status": status}) from exc

        filters = StockCountQueryFilters(
            tenant_id=tenant_id,
            status=status,
            location_id=_as_uuid(location_id, "Location") if location_id else None,
        )
        rows, total = self.sessions.list_sessions(filters, limit=page_size, offset=(page - 1) * page_size)
        line_counts = self.sessions.line_counts([row.id for row in rows])
        return SessionPage(rows=rows, line_counts=line_counts, total=total, page=page, page_size=page_size)

    def get_session(self, context: RequestContext, session_id) -> SessionDetail:
        AuthorizationGate(context).require_role(Role.VIEWER)
        session = self._load_session(session_id, self._tenant_id(context))
        return SessionDetail(session=session, lines=self.sessions.get_lines(session.id))

    def preview_changes(self, context: RequestContext, session_id) -> ChangeReport:
        AuthorizationGate(context).require_role(Role.VIEWER)
        session = self._load_session(session_id, self._tenant_id(context))
        lines = self.sessions.get_lines(session.id)
        return self.detector.detect(session.tenant_id, session.location_id, lines)

    # -- session lifecycle ----------------------------------------------

    def open_session(self, context: RequestContext, location_id, notes: str | None = None) -> StockCountSession:
        gate = AuthorizationGate(context)
        gate.require_role(Role.STAFF)
        actor_id = self._actor_id(gate)
        tenant_id = self._tenant_id(context)
        location_uuid = _as_uuid(location_id, "Location")

        def work():
            location = self.catalog.get_location(location_uuid, tenant_id)
            if location is None:
                raise NotFoundError("Location", location_id)
            active = self.sessions.find_in_progress(tenant_id, location.id)
            if active is not None:
                raise BusinessRuleViolationError(
                    "Location already has an active stock count session",
                    details={"session_id": str(active.id), "location_id": str(location.id)},
                )
            session = StockCountSession(
                tenant_id=tenant_id,
                location_id=location.id,
                status=SessionStatus.IN_PROGRESS.value,
                created_by_id=actor_id,
                notes=notes,
                created_at=datetime.utcnow(),
            )
            # loaded rows are unusable after a failed flush
            try:
                self.sessions.add_session(session)
            except IntegrityError as exc:
                raise BusinessRuleViolationError(
                    "Location already has an active stock count session",
                    details={"location_id": str(location_uuid)},
                ) from exc
            after = {"status": session.status, "location_id": str(location_uuid), "notes": notes}
            return session, session.id, after

        session, new_id, after = self.uow.run(work)
        self._audit(context, "stock_count_session.created", "stock_count_session", new_id, after=after)
        return session

    def cancel_session(self, context: RequestContext, session_id) -> StockCountSession:
        gate = AuthorizationGate(context)
        gate.require_role(Role.STAFF)
        self._actor_id(gate)
        tenant_id = self._tenant_id(context)

        def work():
            session = self._load_session(session_id, tenant_id, for_update=True)
            ensure_transition(session.status, SessionStatus.CANCELLED)
            session.status = SessionStatus.CANCELLED.value
            self.sessions.flush()
            return session, session.id

        session, cancelled_id = self.uow.run(work)
        self._audit(
            context,
            "stock_count_session.cancelled",
            "stock_count_session",
            cancelled_id,
            before={"status": SessionStatus.IN_PROGRESS.value},
            after={"status": SessionStatus.CANCELLED.value},
        )
        return session

    def delete_session(self, context: RequestContext, session_id) -> None:
        gate = AuthorizationGate(context)
        gate.require_role(Role.ADMIN)
        self._actor_id(gate)
        tenant_id = self._tenant_id(context)

        def work():
            session = self._load_session(session_id, tenant_id, for_update=True)
            ensure_deletable(session)
            snapshot = {
                "status": session.status,
                "location_id": str(session.location_id),
                "line_count": len(session.lines),
            }
            self.sessions.delete_session(session)
            return snapshot

        snapshot = self.uow.run(work)
        self._audit(context, "stock_count_session.deleted", "stock_count_session", session_id, before=snapshot)

    def complete(
        self,
        context: RequestContext,
        session_id,
        *,
        apply_adjustments: bool = True,
        admin_override: bool = False,
    ) -> CompletionResult:
        gate = AuthorizationGate(context)
        gate.require_role(Role.STAFF)
        actor_id = self._actor_id(gate)
        if admin_override:
            gate.require_role(Role.ADMIN)
        tenant_id = self._tenant_id(context)

        def work():
            session = self._load_session(session_id, tenant_id, for_update=True)
            lines = self.sessions.get_lines(session.id)
            outcome = self.engine.reconcile(
                session,
                lines,
                actor_id=actor_id,
                apply_adjustments=apply_adjustments,
                admin_override=admin_override,
            )
            session.status = SessionStatus.COMPLETED.value
            session.completed_at = datetime.utcnow()
            self.sessions.flush()
            return outcome, len(lines)

        try:
            outcome, line_count = self.uow.run(work)
        except ConcurrencyError as exc:
            metrics.increment_stock_count_conflict()
            log_json(
                logger,
                {
                    "event": "stock_count.conflict",
                    "trace_id": context.trace_id,
                    "tenant_id": context.tenant_id,
                    "session_id": str(session_id),
                    "changed_items": len(exc.changes),
                },
                level=logging.WARNING,
            )
            raise

        metrics.record_stock_count_completed(mode=outcome.mode.value, adjusted_items=outcome.adjusted_items)
        log_json(
            logger,
            {
                "event": "stock_count.completed",
                "trace_id": context.trace_id,
                "tenant_id": context.tenant_id,
                "session_id": str(session_id),
                "mode": outcome.mode.value,
                "adjusted_items": outcome.adjusted_items,
                "warnings": len(outcome.warnings),
            },
        )
        self._audit(
            context,
            "stock_count_session.completed",
            "stock_count_session",
            session_id,
            before={"status": SessionStatus.IN_PROGRESS.value},
            after={"status": SessionStatus.COMPLETED.value},
            metadata={
                "line_count": line_count,
                "adjustments_applied": outcome.adjustments_applied,
                "adjusted_item_count": outcome.adjusted_items,
                "total_variance": outcome.total_variance,
                "admin_override": bool(admin_override),
                "concurrency_warnings": outcome.warnings or None,
            },
        )
        for alert in outcome.alerts:
            try:
                self.notifier.notify(alert)
            except Exception:
                logger.exception("Low stock notifier failed", extra={"item_id": str(alert.item_id)})
        return outcome.to_result()

    # -- count lines ----------------------------------------------------

    def add_or_update_line(
        self,
        context: RequestContext,
        session_id,
        item_id,
        counted_quantity,
        notes: str | None = None,
    ) -> LineResult:
        gate = AuthorizationGate(context)
        gate.require_role(Role.STAFF)
        self._actor_id(gate)
        counted_quantity = validate_counted_quantity(counted_quantity)
        tenant_id = self._tenant_id(context)
        item_uuid = _as_uuid(item_id, "Item")

        def work():
            session = self._load_session(session_id, tenant_id)
            ensure_editable(session)
            item = self.catalog.get_item(item_uuid, tenant_id)
            if item is None:
                raise NotFoundError("Item", item_id)
            line = self.sessions.get_line(session.id, item.id)
            if line is not None:
                before = _line_snapshot(line)
                self._capture_line(session, line, counted_quantity, notes)
                self.sessions.flush()
                return _line_change(line, before, created=False)
            line = StockCountLine(session_id=session.id, item_id=item.id, created_at=datetime.utcnow())
            self._capture_line(session, line, counted_quantity, notes)
            try:
                self.sessions.add_line(line)
            except IntegrityError as exc:
                raise BusinessRuleViolationError(
                    "Item was counted concurrently in this session",
                    details={"item_id": str(item_uuid)},
                ) from exc
            return _line_change(line, None, created=True)

        change = self.uow.run(work)
        self._audit_line_change(context, change)
        return change.result

    def update_line(self, context: RequestContext, line_id, counted_quantity, notes: str | None = None) -> LineResult:
        gate = AuthorizationGate(context)
        gate.require_role(Role.STAFF)
        self._actor_id(gate)
        counted_quantity = validate_counted_quantity(counted_quantity)
        tenant_id = self._tenant_id(context)

        def work():
            line = self._load_line(line_id, tenant_id)
            ensure_editable(line.session)
            before = _line_snapshot(line)
            # keeps the snapshot taken when the item was counted; only the count moves
            line.counted_quantity = counted_quantity
            line.variance = counted_quantity - line.system_quantity
            if notes is not None:
                line.notes = notes
            line.updated_at = datetime.utcnow()
            self.sessions.flush()
            return _line_change(line, before, created=False)

        change = self.uow.run(work)
        self._audit_line_change(context, change)
        return change.result

    def remove_line(self, context: RequestContext, line_id) -> None:
        gate = AuthorizationGate(context)
        gate.require_role(Role.STAFF)
        self._actor_id(gate)
        tenant_id = self._tenant_id(context)

        def work():
            line = self._load_line(line_id, tenant_id)
            ensure_editable(line.session)
            snapshot = _line_snapshot(line)
            session_id = line.session_id
            self.sessions.delete_line(line)
            return snapshot, session_id

        snapshot, session_id = self.uow.run(work)
        self._audit(
            context,
            "stock_count_line.removed",
            "stock_count_line",
            line_id,
            before=snapshot,
            metadata={"session_id": str(session_id)},
        )
