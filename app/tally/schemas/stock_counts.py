from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt


class StockCountCreateRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {"location_id": "5f0c6d3e-2d7a-4c55-9a51-1b8f5b6f9e01", "notes": "Quarterly count"}
        }
    }

    location_id: UUID
    notes: str | None = Field(default=None, max_length=2000)


class StockCountLineUpsertRequest(BaseModel):
    item_id: UUID
    counted_quantity: StrictInt
    notes: str | None = Field(default=None, max_length=2000)


class StockCountLineUpdateRequest(BaseModel):
    counted_quantity: StrictInt
    notes: str | None = Field(default=None, max_length=2000)


class StockCountActionRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {"action": "complete", "apply_adjustments": True, "admin_override": False},
                {"action": "cancel"},
            ]
        }
    }

    action: Literal["complete", "cancel"]
    apply_adjustments: bool = True
    admin_override: bool = False


class StockCountLineResponse(BaseModel):
    id: str
    item_id: str
    item_name: str | None
    sku: str | None
    counted_quantity: int
    system_quantity: int
    variance: int
    notes: str | None
    created_at: datetime
    updated_at: datetime


class StockCountSessionSummary(BaseModel):
    id: str
    tenant_id: str
    location_id: str
    location_name: str | None
    status: str
    notes: str | None
    created_by_id: str
    created_at: datetime
    completed_at: datetime | None
    line_count: int


class StockCountSessionResponse(StockCountSessionSummary):
    lines: list[StockCountLineResponse]


class StockCountListResponse(BaseModel):
    page: int
    page_size: int
    total: int
    rows: list[StockCountSessionSummary]


class StockCountLineResult(BaseModel):
    line_id: str
    variance: int
    created: bool


class InventoryChangeResponse(BaseModel):
    item_id: str
    item_name: str
    system_at_count: int
    system_now: int
    difference: int


class StockCountChangesResponse(BaseModel):
    has_changes: bool
    changes: list[InventoryChangeResponse]


class StockCountActionResponse(BaseModel):
    session_id: str
    status: str
    adjusted_items: int = 0
    warnings: list[str] | None = None
    trace_id: str
