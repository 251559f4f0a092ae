from datetime import datetime

from sqlalchemy import select

from app.tally.db.models import Notification


class NotificationRepository:
    def __init__(self, db):
        self.db = db

    def find_recent_unread(self, *, tenant_id, type: str, item_id, location_id, since: datetime) -> Notification | None:
        return (
            self.db.execute(
                select(Notification).where(
                    Notification.tenant_id == tenant_id,
                    Notification.type == type,
                    Notification.item_id == item_id,
                    Notification.location_id == location_id,
                    Notification.read.is_(False),
                    Notification.created_at >= since,
                )
            )
            .scalars()
            .first()
        )

    def create(self, notification: Notification) -> Notification:
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification
