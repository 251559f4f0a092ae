import logging
from datetime import datetime, timedelta

from app.tally.core.config import settings
from app.tally.db.models import Notification
from app.tally.repos.notifications import NotificationRepository
from app.tally.services.ports import LowStockAlert, LowStockNotifierPort

logger = logging.getLogger(__name__)

LOW_STOCK = "LOW_STOCK"


def is_below_reorder_point(quantity: int, reorder_point: int | None) -> bool:
    return reorder_point is not None and quantity < reorder_point


class LowStockNotifier(LowStockNotifierPort):
    """Raises an in-app notification when a location drops below its reorder point.

    Best-effort like audit: failures are logged and swallowed.
    """

    def __init__(self, db, *, dedupe_hours: int | None = None):
        self.db = db
        self.repo = NotificationRepository(db)
        self.dedupe_window = timedelta(
            hours=settings.LOW_STOCK_DEDUPE_HOURS if dedupe_hours is None else dedupe_hours
        )

    def notify(self, alert: LowStockAlert) -> None:
        if not is_below_reorder_point(alert.quantity, alert.reorder_point):
            return
        try:
            existing = self.repo.find_recent_unread(
                tenant_id=alert.tenant_id,
                type=LOW_STOCK,
                item_id=alert.item_id,
                location_id=alert.location_id,
                since=datetime.utcnow() - self.dedupe_window,
            )
            if existing is not None:
                return
            self.repo.create(
                Notification(
                    tenant_id=alert.tenant_id,
                    type=LOW_STOCK,
                    title=f"Low stock: {alert.item_name}",
                    message=(
                        f'Location "{alert.location_name}" is below its reorder point '
                        f"({alert.quantity} < {alert.reorder_point})."
                    ),
                    item_id=alert.item_id,
                    location_id=alert.location_id,
                    read=False,
                    created_at=datetime.utcnow(),
                )
            )
        except Exception:
            self.db.rollback()
            logger.exception(
                "Failed to write low stock notification",
                extra={"tenant_id": str(alert.tenant_id), "item_id": str(alert.item_id)},
            )
