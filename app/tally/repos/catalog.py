from sqlalchemy import select

from app.tally.db.models import Item, Location


class CatalogRepository:
    """Read-only lookups for the locations and items a count refers to."""

    def __init__(self, db):
        self.db = db

    def get_location(self, location_id, tenant_id) -> Location | None:
        return (
            self.db.execute(select(Location).where(Location.id == location_id, Location.tenant_id == tenant_id))
            .scalars()
            .first()
        )

    def get_item(self, item_id, tenant_id) -> Item | None:
        return (
            self.db.execute(select(Item).where(Item.id == item_id, Item.tenant_id == tenant_id))
            .scalars()
            .first()
        )
