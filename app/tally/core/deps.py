from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.tally.core.context import RequestContext, build_request_context, get_request_context
from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.core.security import TokenData, decode_token, oauth2_scheme
from app.tally.db.session import get_db
from app.tally.db.unit_of_work import SqlAlchemyUnitOfWork
from app.tally.repos.catalog import CatalogRepository
from app.tally.repos.inventory import InventoryLedgerRepository, StockAdjustmentRepository
from app.tally.repos.stock_counts import StockCountRepository
from app.tally.repos.users import UserRepository
from app.tally.services.audit import AuditService
from app.tally.services.notifications import LowStockNotifier
from app.tally.services.stock_counts import StockCountService


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_current_user(token_data: TokenData = Depends(get_current_token_data), db=Depends(get_db)):
    user_id = token_data.sub
    if not user_id:
        raise AppError(ErrorCatalog.INVALID_TOKEN)

    repo = UserRepository(db)
    try:
        user = repo.get_by_id(user_id)
    except ValueError as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc
    if user is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    return user


def require_active_user(user=Depends(get_current_user)):
    if not user.is_active or user.status != "active":
        raise AppError(ErrorCatalog.USER_INACTIVE)
    return user


def require_request_context(request: Request, user=Depends(require_active_user)) -> RequestContext:
    # Role and tenant come from the stored user, so a demotion takes effect before the token expires.
    trace_id = getattr(request.state, "trace_id", "")
    context = build_request_context(
        user_id=str(user.id),
        tenant_id=str(user.tenant_id),
        role=user.role,
        trace_id=trace_id,
    )
    request.state.context = context
    return context


def get_stock_count_service(db=Depends(get_db)) -> StockCountService:
    return StockCountService(
        sessions=StockCountRepository(db),
        catalog=CatalogRepository(db),
        ledger=InventoryLedgerRepository(db),
        recorder=StockAdjustmentRepository(db),
        audit=AuditService(db),
        notifier=LowStockNotifier(db),
        uow=SqlAlchemyUnitOfWork(db),
    )


__all__ = [
    "get_current_token_data",
    "get_current_user",
    "require_active_user",
    "require_request_context",
    "get_request_context",
    "get_stock_count_service",
]
