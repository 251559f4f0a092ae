from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from app.tally.core.error_catalog import BusinessRuleViolationError, ConcurrencyError, ValidationError
from app.tally.services.concurrency import ChangeReport, ConcurrencyDetector
from app.tally.services.ports import (
    AdjustmentDraft,
    AdjustmentRecorderPort,
    InventoryLedgerPort,
    LowStockAlert,
)
from app.tally.services.session_state import SessionStatus, ensure_transition

ADJUSTMENT_REASON = "Stock Count"


class CompletionMode(str, Enum):
    FINALIZE_ONLY = "FINALIZE_ONLY"
    APPLY = "APPLY"
    APPLY_WITH_WARNINGS = "APPLY_WITH_WARNINGS"
    BLOCK = "BLOCK"


# (apply_adjustments, has_changes, admin_override) -> mode.
# Without adjustments nothing is written, so divergence is not surfaced.
_COMPLETION_TABLE: dict[tuple[bool, bool, bool], CompletionMode] = {
    (False, False, False): CompletionMode.FINALIZE_ONLY,
    (False, False, True): CompletionMode.FINALIZE_ONLY,
    (False, True, False): CompletionMode.FINALIZE_ONLY,
    (False, True, True): CompletionMode.FINALIZE_ONLY,
    (True, False, False): CompletionMode.APPLY,
    (True, False, True): CompletionMode.APPLY,
    (True, True, False): CompletionMode.BLOCK,
    (True, True, True): CompletionMode.APPLY_WITH_WARNINGS,
}


def resolve_completion_mode(apply_adjustments: bool, has_changes: bool, admin_override: bool) -> CompletionMode:
    return _COMPLETION_TABLE[(bool(apply_adjustments), bool(has_changes), bool(admin_override))]


@dataclass(frozen=True)
class CompletionResult:
    adjusted_items: int
    warnings: list[str] | None = None


@dataclass
class ReconciliationOutcome:
    mode: CompletionMode
    adjusted_items: int = 0
    total_variance: int = 0
    warnings: list[str] = field(default_factory=list)
    alerts: list[LowStockAlert] = field(default_factory=list)

    @property
    def adjustments_applied(self) -> bool:
        return self.mode in (CompletionMode.APPLY, CompletionMode.APPLY_WITH_WARNINGS)

    def to_result(self) -> CompletionResult:
        return CompletionResult(adjusted_items=self.adjusted_items, warnings=self.warnings or None)


def adjustment_note(session_id, line_notes: str | None) -> str:
    note = f"Count session #{str(session_id)[:8]}"
    if line_notes:
        note = f"{note} - {line_notes}"
    return note


class ReconciliationEngine:
    """Turns an in-progress count into ledger writes and adjustment records.

    Must run inside a unit of work: a raised error leaves the caller to roll
    back every write made so far.
    """

    def __init__(self, ledger: InventoryLedgerPort, recorder: AdjustmentRecorderPort):
        self.ledger = ledger
        self.recorder = recorder
        self.detector = ConcurrencyDetector(ledger)

    def reconcile(
        self,
        session,
        lines: list,
        *,
        actor_id: uuid.UUID,
        apply_adjustments: bool,
        admin_override: bool,
    ) -> ReconciliationOutcome:
        ensure_transition(session.status, SessionStatus.COMPLETED)
        if not lines:
            raise ValidationError("Session must have at least one line")

        report: ChangeReport = self.detector.detect(session.tenant_id, session.location_id, lines)
        mode = resolve_completion_mode(apply_adjustments, report.has_changes, admin_override)
        if mode == CompletionMode.BLOCK:
            raise ConcurrencyError(report.changes)

        outcome = ReconciliationOutcome(mode=mode, total_variance=sum(abs(line.variance) for line in lines))
        if mode == CompletionMode.APPLY_WITH_WARNINGS:
            outcome.warnings = report.warnings()
        if outcome.adjustments_applied:
            self._apply(session, lines, actor_id, outcome)
        return outcome

    def _apply(self, session, lines: list, actor_id: uuid.UUID, outcome: ReconciliationOutcome) -> None:
        pending = [line for line in lines if line.variance != 0]
        for line in pending:
            if line.counted_quantity < 0:
                item_name = line.item.name if line.item is not None else str(line.item_id)
                raise BusinessRuleViolationError(
                    f"Adjustment for {item_name} would result in negative inventory",
                    details={"item_id": str(line.item_id), "counted_quantity": line.counted_quantity},
                )

        location_name = session.location.name if session.location is not None else str(session.location_id)
        for line in pending:
            level = self.ledger.set_quantity(session.tenant_id, session.location_id, line.item_id, line.counted_quantity)
            self.recorder.record(
                session.tenant_id,
                actor_id,
                AdjustmentDraft(
                    item_id=line.item_id,
                    location_id=session.location_id,
                    quantity=line.variance,
                    reason=ADJUSTMENT_REASON,
                    note=adjustment_note(session.id, line.notes),
                ),
            )
            outcome.adjusted_items += 1
            outcome.alerts.append(
                LowStockAlert(
                    tenant_id=session.tenant_id,
                    item_id=line.item_id,
                    item_name=line.item.name if line.item is not None else str(line.item_id),
                    location_id=session.location_id,
                    location_name=location_name,
                    quantity=level.quantity,
                    reorder_point=level.reorder_point,
                )
            )
