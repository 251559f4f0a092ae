from app.tally.core.error_catalog import ErrorCatalog
from tests.stock_count_helpers import (
    complete,
    count_item,
    create_item,
    get_inventory,
    get_session_row,
    list_adjustments,
    open_session,
    set_inventory,
)


def _counted_then_moved(client, db_session, stock, *, name="Gauze", snapshot=10, counted=8, live=12):
    item = create_item(db_session, stock.tenant, name=name)
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=snapshot)
    session = open_session(client, stock.headers(), stock.location)
    count_item(client, stock.headers(), session["id"], item, counted)
    # another writer moves stock after the line was captured
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=live)
    return session, item


def test_divergence_blocks_commit(client, db_session, stock):
    session, item = _counted_then_moved(client, db_session, stock)

    response = complete(client, stock.headers(), session["id"])
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == ErrorCatalog.CONCURRENCY_CONFLICT.code
    assert body["message"] == "Inventory changed during count"
    assert body["details"]["changes"] == [
        {
            "item_id": str(item.id),
            "item_name": "Gauze",
            "system_at_count": 10,
            "system_now": 12,
            "difference": 2,
        }
    ]

    assert get_session_row(db_session, session["id"]).status == "IN_PROGRESS"
    assert get_inventory(db_session, stock.location, item).quantity == 12
    assert list_adjustments(db_session, stock.location) == []

    metrics_text = client.get("/tally/ops/metrics").text
    assert "stock_count_conflict_total 1.0" in metrics_text


def test_divergence_reported_by_preview(client, db_session, stock):
    session, item = _counted_then_moved(client, db_session, stock, snapshot=7, live=4)

    response = client.get(f"/tally/stock-counts/{session['id']}/changes", headers=stock.headers("VIEWER"))
    assert response.status_code == 200
    body = response.json()
    assert body["has_changes"] is True
    assert body["changes"][0]["item_id"] == str(item.id)
    assert body["changes"][0]["difference"] == -3


def test_preview_without_divergence(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Stable")
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=3)
    session = open_session(client, stock.headers(), stock.location)
    count_item(client, stock.headers(), session["id"], item, 2)

    body = client.get(f"/tally/stock-counts/{session['id']}/changes", headers=stock.headers()).json()
    assert body == {"has_changes": False, "changes": []}


def test_admin_override_applies_counted_values_with_warnings(client, db_session, stock):
    session, item = _counted_then_moved(client, db_session, stock)

    response = complete(client, stock.headers("ADMIN"), session["id"], admin_override=True)
    assert response.status_code == 200
    body = response.json()
    assert body["adjusted_items"] == 1
    assert len(body["warnings"]) == 1
    assert "System quantity changed from 10 to 12" in body["warnings"][0]
    assert body["warnings"][0].startswith("Gauze:")

    assert get_inventory(db_session, stock.location, item).quantity == 8
    adjustments = list_adjustments(db_session, stock.location)
    assert [row.quantity for row in adjustments] == [-2]
    assert get_session_row(db_session, session["id"]).status == "COMPLETED"


def test_staff_override_forbidden_even_without_divergence(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Calm")
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=5)
    session = open_session(client, stock.headers(), stock.location)
    count_item(client, stock.headers(), session["id"], item, 4)

    response = complete(client, stock.headers("STAFF"), session["id"], admin_override=True)
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.PERMISSION_DENIED.code
    assert get_session_row(db_session, session["id"]).status == "IN_PROGRESS"
    assert get_inventory(db_session, stock.location, item).quantity == 5


def test_admin_override_without_divergence_has_no_warnings(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Quiet")
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=5)
    session = open_session(client, stock.headers(), stock.location)
    count_item(client, stock.headers(), session["id"], item, 4)

    response = complete(client, stock.headers("ADMIN"), session["id"], admin_override=True)
    assert response.status_code == 200
    assert response.json()["warnings"] is None
    assert get_inventory(db_session, stock.location, item).quantity == 4


def test_divergence_ignored_when_not_applying(client, db_session, stock):
    session, item = _counted_then_moved(client, db_session, stock)

    response = complete(client, stock.headers(), session["id"], apply_adjustments=False)
    assert response.status_code == 200
    assert response.json()["warnings"] is None
    assert get_inventory(db_session, stock.location, item).quantity == 12
    assert get_session_row(db_session, session["id"]).status == "COMPLETED"


def test_blocked_session_can_be_recounted_and_completed(client, db_session, stock):
    session, item = _counted_then_moved(client, db_session, stock)
    assert complete(client, stock.headers(), session["id"]).status_code == 409

    recount = count_item(client, stock.headers(), session["id"], item, 11)
    assert recount.json()["variance"] == -1

    response = complete(client, stock.headers(), session["id"])
    assert response.status_code == 200
    assert get_inventory(db_session, stock.location, item).quantity == 11
