"""Ports for the collaborators the stock count service drives.

The service programs against these interfaces; SQLAlchemy adapters are wired
in at the composition root (``app.tally.core.deps``) and tests swap in fakes.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class LedgerLevel:
    quantity: int
    reorder_point: int | None = None
    reorder_quantity: int | None = None


@dataclass(frozen=True)
class AdjustmentDraft:
    item_id: uuid.UUID
    location_id: uuid.UUID
    quantity: int
    reason: str
    note: str | None = None


@dataclass
class AuditEventPayload:
    tenant_id: str
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


@dataclass(frozen=True)
class LowStockAlert:
    tenant_id: uuid.UUID
    item_id: uuid.UUID
    item_name: str
    location_id: uuid.UUID
    location_name: str
    quantity: int
    reorder_point: int | None


class InventoryLedgerPort(ABC):
    """Live per-location quantities, shared with every other inventory writer."""

    @abstractmethod
    def get_quantity(self, tenant_id: uuid.UUID, location_id: uuid.UUID, item_id: uuid.UUID) -> int:
        """Return the live quantity; a missing row reads as 0."""
        ...

    @abstractmethod
    def set_quantity(
        self, tenant_id: uuid.UUID, location_id: uuid.UUID, item_id: uuid.UUID, quantity: int
    ) -> LedgerLevel:
        """Create or overwrite the row's quantity, keeping its reorder metadata."""
        ...


class AdjustmentRecorderPort(ABC):
    @abstractmethod
    def record(self, tenant_id: uuid.UUID, actor_id: uuid.UUID, draft: AdjustmentDraft) -> uuid.UUID:
        ...


class AuditSinkPort(ABC):
    @abstractmethod
    def record_event(self, payload: AuditEventPayload) -> None:
        ...


class LowStockNotifierPort(ABC):
    @abstractmethod
    def notify(self, alert: LowStockAlert) -> None:
        ...


class UnitOfWork(ABC):
    """Runs a block of work atomically: all of its writes commit or none do."""

    @abstractmethod
    def run(self, work: Callable[[], T]) -> T:
        ...
