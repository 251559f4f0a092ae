from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.tally.core.error_catalog import ErrorCatalog
from app.tally.core.errors import setup_exception_handlers
from app.tally.core.metrics import metrics


def _app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/lock-timeout")
    def lock_timeout():
        raise OperationalError("UPDATE location_inventory", {}, Exception("database is locked"))

    @app.get("/boom")
    def boom():
        raise RuntimeError("unexpected")

    return app


def test_lock_timeout_maps_to_conflict_and_metric():
    with TestClient(_app(), raise_server_exceptions=False) as client:
        response = client.get("/lock-timeout")

    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.LOCK_TIMEOUT.code

    content = metrics.render().content.decode("utf-8")
    if metrics.enabled:
        assert "lock_wait_timeout_total 1.0" in content
    else:
        assert "metrics_disabled" in content


def test_unhandled_error_is_internal_error():
    with TestClient(_app(), raise_server_exceptions=False) as client:
        response = client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == ErrorCatalog.INTERNAL_ERROR.code
    assert body["details"] == {"type": "RuntimeError"}
