from __future__ import annotations

from datetime import datetime

from sqlalchemy import select

from app.tally.db.models import LocationInventory, StockAdjustment
from app.tally.services.ports import AdjustmentDraft, AdjustmentRecorderPort, InventoryLedgerPort, LedgerLevel


def _level(row: LocationInventory) -> LedgerLevel:
    return LedgerLevel(
        quantity=row.quantity,
        reorder_point=row.reorder_point,
        reorder_quantity=row.reorder_quantity,
    )


class InventoryLedgerRepository(InventoryLedgerPort):
    def __init__(self, db):
        self.db = db

    def _get_row(self, tenant_id, location_id, item_id) -> LocationInventory | None:
        return (
            self.db.execute(
                select(LocationInventory).where(
                    LocationInventory.tenant_id == tenant_id,
                    LocationInventory.location_id == location_id,
                    LocationInventory.item_id == item_id,
                )
            )
            .scalars()
            .first()
        )

    def get_quantity(self, tenant_id, location_id, item_id) -> int:
        row = self._get_row(tenant_id, location_id, item_id)
        return row.quantity if row is not None else 0

    def set_quantity(self, tenant_id, location_id, item_id, quantity: int) -> LedgerLevel:
        row = self._get_row(tenant_id, location_id, item_id)
        if row is None:
            row = LocationInventory(
                tenant_id=tenant_id,
                location_id=location_id,
                item_id=item_id,
                quantity=quantity,
            )
            self.db.add(row)
        else:
            row.quantity = quantity
        row.updated_at = datetime.utcnow()
        self.db.flush()
        return _level(row)


class StockAdjustmentRepository(AdjustmentRecorderPort):
    def __init__(self, db):
        self.db = db

    def record(self, tenant_id, actor_id, draft: AdjustmentDraft):
        adjustment = StockAdjustment(
            tenant_id=tenant_id,
            item_id=draft.item_id,
            location_id=draft.location_id,
            quantity=draft.quantity,
            reason=draft.reason,
            note=draft.note,
            created_by_id=actor_id,
            created_at=datetime.utcnow(),
        )
        self.db.add(adjustment)
        self.db.flush()
        return adjustment.id

