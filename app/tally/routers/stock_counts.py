from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response

from app.tally.core.context import RequestContext
from app.tally.core.deps import get_stock_count_service, require_request_context
from app.tally.db.models import StockCountLine, StockCountSession
from app.tally.schemas.stock_counts import (
    InventoryChangeResponse,
    StockCountActionRequest,
    StockCountActionResponse,
    StockCountChangesResponse,
    StockCountCreateRequest,
    StockCountLineResponse,
    StockCountLineResult,
    StockCountLineUpdateRequest,
    StockCountLineUpsertRequest,
    StockCountListResponse,
    StockCountSessionResponse,
    StockCountSessionSummary,
)
from app.tally.services.stock_counts import LineResult, StockCountService


router = APIRouter()


def _session_summary(session: StockCountSession, line_count: int) -> dict:
    return {
        "id": str(session.id),
        "tenant_id": str(session.tenant_id),
        "location_id": str(session.location_id),
        "location_name": session.location.name if session.location is not None else None,
        "status": session.status,
        "notes": session.notes,
        "created_by_id": str(session.created_by_id),
        "created_at": session.created_at,
        "completed_at": session.completed_at,
        "line_count": line_count,
    }


def _line_response(line: StockCountLine) -> StockCountLineResponse:
    return StockCountLineResponse(
        id=str(line.id),
        item_id=str(line.item_id),
        item_name=line.item.name if line.item is not None else None,
        sku=line.item.sku if line.item is not None else None,
        counted_quantity=line.counted_quantity,
        system_quantity=line.system_quantity,
        variance=line.variance,
        notes=line.notes,
        created_at=line.created_at,
        updated_at=line.updated_at,
    )


def _line_result(result: LineResult) -> StockCountLineResult:
    return StockCountLineResult(line_id=str(result.line_id), variance=result.variance, created=result.created)


def _session_response(service: StockCountService, context: RequestContext, session_id) -> StockCountSessionResponse:
    detail = service.get_session(context, session_id)
    return StockCountSessionResponse(
        **_session_summary(detail.session, len(detail.lines)),
        lines=[_line_response(line) for line in detail.lines],
    )


@router.get("/tally/stock-counts", response_model=StockCountListResponse)
def list_stock_counts(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    status: str | None = Query(None),
    location_id: UUID | None = Query(None),
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    result = service.list_sessions(
        context,
        page=page,
        page_size=page_size,
        status=status,
        location_id=location_id,
    )
    return StockCountListResponse(
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        rows=[
            StockCountSessionSummary(**_session_summary(row, result.line_counts.get(row.id, 0)))
            for row in result.rows
        ],
    )


@router.post("/tally/stock-counts", response_model=StockCountSessionResponse, status_code=201)
def create_stock_count(
    payload: StockCountCreateRequest,
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    session = service.open_session(context, payload.location_id, notes=payload.notes)
    return _session_response(service, context, session.id)


@router.get("/tally/stock-counts/{session_id}", response_model=StockCountSessionResponse)
def get_stock_count(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    return _session_response(service, context, session_id)


@router.delete("/tally/stock-counts/{session_id}", status_code=204)
def delete_stock_count(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    service.delete_session(context, session_id)
    return Response(status_code=204)


@router.get("/tally/stock-counts/{session_id}/changes", response_model=StockCountChangesResponse)
def preview_stock_count_changes(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    report = service.preview_changes(context, session_id)
    return StockCountChangesResponse(
        has_changes=report.has_changes,
        changes=[InventoryChangeResponse(**change.as_dict()) for change in report.changes],
    )


@router.post("/tally/stock-counts/{session_id}/lines", response_model=StockCountLineResult)
def upsert_stock_count_line(
    session_id: UUID,
    payload: StockCountLineUpsertRequest,
    response: Response,
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    result = service.add_or_update_line(
        context,
        session_id,
        payload.item_id,
        payload.counted_quantity,
        notes=payload.notes,
    )
    response.status_code = 201 if result.created else 200
    return _line_result(result)


@router.patch("/tally/stock-counts/lines/{line_id}", response_model=StockCountLineResult)
def update_stock_count_line(
    line_id: UUID,
    payload: StockCountLineUpdateRequest,
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    result = service.update_line(context, line_id, payload.counted_quantity, notes=payload.notes)
    return _line_result(result)


@router.delete("/tally/stock-counts/lines/{line_id}", status_code=204)
def remove_stock_count_line(
    line_id: UUID,
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    service.remove_line(context, line_id)
    return Response(status_code=204)


@router.post("/tally/stock-counts/{session_id}/actions", response_model=StockCountActionResponse)
def stock_count_actions(
    session_id: UUID,
    request: Request,
    payload: StockCountActionRequest,
    context: RequestContext = Depends(require_request_context),
    service: StockCountService = Depends(get_stock_count_service),
):
    trace_id = getattr(request.state, "trace_id", "")
    if payload.action == "cancel":
        session = service.cancel_session(context, session_id)
        return StockCountActionResponse(session_id=str(session.id), status=session.status, trace_id=trace_id)

    result = service.complete(
        context,
        session_id,
        apply_adjustments=payload.apply_adjustments,
        admin_override=payload.admin_override,
    )
    return StockCountActionResponse(
        session_id=str(session_id),
        status="COMPLETED",
        adjusted_items=result.adjusted_items,
        warnings=result.warnings,
        trace_id=trace_id,
    )
