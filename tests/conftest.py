import importlib
import os
import uuid
from contextlib import contextmanager
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

from tests.stock_count_helpers import StockCountFixture, create_tenant, create_user, login


@contextmanager
def _postgres_test_database(base_url: str):
    url = make_url(base_url)
    db_name = f"tally_test_{uuid.uuid4().hex}"
    admin_engine = create_engine(url.set(database="postgres"), isolation_level="AUTOCOMMIT", future=True)
    with admin_engine.connect() as conn:
        conn.execute(text(f'CREATE DATABASE "{db_name}"'))
    try:
        yield str(url.set(database=db_name))
    finally:
        with admin_engine.connect() as conn:
            conn.execute(
                text("SELECT pg_terminate_backend(pid) FROM pg_stat_activity WHERE datname = :db_name"),
                {"db_name": db_name},
            )
            conn.execute(text(f'DROP DATABASE IF EXISTS "{db_name}"'))
        admin_engine.dispose()


@contextmanager
def _test_database(tmp_path: Path):
    base_url = os.getenv("TALLY_TEST_DATABASE_URL", "")
    if base_url.startswith("postgres"):
        with _postgres_test_database(base_url) as database_url:
            yield database_url
    else:
        yield f"sqlite+pysqlite:///{tmp_path / 'test.db'}"


def _setup_app(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    os.environ["SECRET_KEY"] = "test-secret"

    import app.tally.core.config as config
    import app.tally.db.session as session
    import app.main as main

    importlib.reload(config)
    importlib.reload(session)
    importlib.reload(main)

    return main.create_app(), session


def run_migrations(database_url: str):
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


@pytest.fixture(autouse=True)
def _reset_metrics():
    from app.tally.core.metrics import metrics

    metrics.reset()
    yield


@pytest.fixture()
def client(tmp_path: Path):
    with _test_database(tmp_path) as database_url:
        run_migrations(database_url)
        app, session = _setup_app(database_url)

        with TestClient(app) as client:
            yield client

        session.engine.dispose()


@pytest.fixture()
def db_session(client):
    from app.tally.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def stock(client, db_session) -> StockCountFixture:
    """One tenant with a location and a user per role, already logged in."""
    tenant, location = create_tenant(db_session, suffix="main")
    users = {
        role: create_user(db_session, tenant, suffix=f"main-{role.lower()}", role=role)
        for role in ("VIEWER", "STAFF", "ADMIN")
    }
    tokens = {role: login(client, user.username) for role, user in users.items()}
    return StockCountFixture(tenant=tenant, location=location, users=users, tokens=tokens)
