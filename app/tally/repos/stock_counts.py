from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from app.tally.db.models import Item, StockCountLine, StockCountSession


@dataclass(frozen=True)
class StockCountQueryFilters:
    tenant_id: str
    status: str | None = None
    location_id: str | None = None


class StockCountRepository:
    def __init__(self, db):
        self.db = db

    def get_session(self, session_id, tenant_id, *, for_update: bool = False) -> StockCountSession | None:
        query = select(StockCountSession).where(
            StockCountSession.id == session_id,
            StockCountSession.tenant_id == tenant_id,
        )
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalars().first()

    def find_in_progress(self, tenant_id, location_id) -> StockCountSession | None:
        return (
            self.db.execute(
                select(StockCountSession).where(
                    StockCountSession.tenant_id == tenant_id,
                    StockCountSession.location_id == location_id,
                    StockCountSession.status == "IN_PROGRESS",
                )
            )
            .scalars()
            .first()
        )

    def list_sessions(
        self, filters: StockCountQueryFilters, *, limit: int, offset: int
    ) -> tuple[list[StockCountSession], int]:
        query = select(StockCountSession).where(StockCountSession.tenant_id == filters.tenant_id)
        count_query = (
            select(func.count())
            .select_from(StockCountSession)
            .where(StockCountSession.tenant_id == filters.tenant_id)
        )
        if filters.status:
            query = query.where(StockCountSession.status == filters.status)
            count_query = count_query.where(StockCountSession.status == filters.status)
        if filters.location_id:
            query = query.where(StockCountSession.location_id == filters.location_id)
            count_query = count_query.where(StockCountSession.location_id == filters.location_id)

        rows = (
            self.db.execute(
                query.options(selectinload(StockCountSession.location))
                .order_by(StockCountSession.created_at.desc(), StockCountSession.id)
                .limit(limit)
                .offset(offset)
            )
            .scalars()
            .all()
        )
        total = self.db.execute(count_query).scalar_one()
        return list(rows), int(total or 0)

    def line_counts(self, session_ids: list) -> dict:
        if not session_ids:
            return {}
        rows = self.db.execute(
            select(StockCountLine.session_id, func.count())
            .where(StockCountLine.session_id.in_(session_ids))
            .group_by(StockCountLine.session_id)
        ).all()
        return {session_id: int(count) for session_id, count in rows}

    def add_session(self, session: StockCountSession) -> StockCountSession:
        self.db.add(session)
        self.db.flush()
        return session

    def delete_session(self, session: StockCountSession) -> None:
        self.db.delete(session)
        self.db.flush()

    def get_lines(self, session_id) -> list[StockCountLine]:
        return list(
            self.db.execute(
                select(StockCountLine)
                .join(Item, Item.id == StockCountLine.item_id)
                .options(selectinload(StockCountLine.item))
                .where(StockCountLine.session_id == session_id)
                .order_by(Item.name, StockCountLine.id)
            )
            .scalars()
            .all()
        )

    def get_line(self, session_id, item_id) -> StockCountLine | None:
        return (
            self.db.execute(
                select(StockCountLine).where(
                    StockCountLine.session_id == session_id,
                    StockCountLine.item_id == item_id,
                )
            )
            .scalars()
            .first()
        )

    def get_line_in_tenant(self, line_id, tenant_id) -> StockCountLine | None:
        return (
            self.db.execute(
                select(StockCountLine)
                .join(StockCountSession, StockCountSession.id == StockCountLine.session_id)
                .where(StockCountLine.id == line_id, StockCountSession.tenant_id == tenant_id)
            )
            .scalars()
            .first()
        )

    def add_line(self, line: StockCountLine) -> StockCountLine:
        self.db.add(line)
        self.db.flush()
        return line

    def delete_line(self, line: StockCountLine) -> None:
        self.db.delete(line)
        self.db.flush()

    def flush(self) -> None:
        self.db.flush()
