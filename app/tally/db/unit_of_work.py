from __future__ import annotations

import logging
from typing import Callable, TypeVar

from app.tally.services.ports import UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Commits the session when the work returns, rolls it back on any exception."""

    def __init__(self, db):
        self.db = db

    def run(self, work: Callable[[], T]) -> T:
        try:
            result = work()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result
