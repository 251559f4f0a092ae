from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterable

from app.tally.services.ports import InventoryLedgerPort


@dataclass(frozen=True)
class InventoryChange:
    item_id: uuid.UUID
    item_name: str
    system_at_count: int
    system_now: int

    @property
    def difference(self) -> int:
        return self.system_now - self.system_at_count

    def describe(self) -> str:
        return (
            f"{self.item_name}: System quantity changed from {self.system_at_count} "
            f"to {self.system_now} ({self.difference:+d}) during count"
        )

    def as_dict(self) -> dict:
        return {
            "item_id": str(self.item_id),
            "item_name": self.item_name,
            "system_at_count": self.system_at_count,
            "system_now": self.system_now,
            "difference": self.difference,
        }


@dataclass(frozen=True)
class ChangeReport:
    changes: list[InventoryChange] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def warnings(self) -> list[str]:
        return [change.describe() for change in self.changes]


class ConcurrencyDetector:
    """Compares each line's captured snapshot with the live ledger quantity."""

    def __init__(self, ledger: InventoryLedgerPort):
        self.ledger = ledger

    def detect(self, tenant_id, location_id, lines: Iterable) -> ChangeReport:
        changes = []
        for line in lines:
            current = self.ledger.get_quantity(tenant_id, location_id, line.item_id)
            if current != line.system_quantity:
                changes.append(
                    InventoryChange(
                        item_id=line.item_id,
                        item_name=line.item.name if line.item is not None else str(line.item_id),
                        system_at_count=line.system_quantity,
                        system_now=current,
                    )
                )
        return ChangeReport(changes=changes)
