from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.orm import sessionmaker

from app.tally.db.models import Location, Tenant, User
from app.tally.db.seed import run_seed


def run_migrations(database_url: str):
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


def test_migrations_apply(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'migrations.db'}"
    run_migrations(database_url)

    engine = create_engine(database_url, future=True)
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())

    for table in (
        "tenants",
        "locations",
        "users",
        "items",
        "location_inventory",
        "stock_adjustments",
        "stock_count_sessions",
        "stock_count_lines",
        "audit_events",
        "notifications",
    ):
        assert table in tables

    session_indexes = {index["name"]: index for index in inspector.get_indexes("stock_count_sessions")}
    assert session_indexes["uq_stock_count_sessions_in_progress"]["unique"]
    line_constraints = {constraint["name"] for constraint in inspector.get_unique_constraints("stock_count_lines")}
    assert "uq_stock_count_lines_session_item" in line_constraints
    engine.dispose()


def test_seed_is_idempotent(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'seed.db'}"
    run_migrations(database_url)

    engine = create_engine(database_url, future=True)
    SessionLocal = sessionmaker(bind=engine, future=True)

    with SessionLocal() as db:
        run_seed(db)
        counts = [db.scalar(select(func.count()).select_from(model)) for model in (Tenant, Location, User)]
        run_seed(db)
        counts_after = [db.scalar(select(func.count()).select_from(model)) for model in (Tenant, Location, User)]
        admin = db.execute(select(User)).scalars().one()

    assert counts == [1, 1, 1]
    assert counts_after == counts
    assert admin.role == "ADMIN"
    engine.dispose()
