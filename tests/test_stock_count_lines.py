import pytest
from sqlalchemy import select

from app.tally.core.error_catalog import ErrorCatalog
from app.tally.db.models import AuditEvent
from tests.stock_count_helpers import (
    complete,
    count_item,
    create_item,
    create_tenant,
    open_session,
    set_inventory,
)


def _detail(client, stock, session_id):
    response = client.get(f"/tally/stock-counts/{session_id}", headers=stock.headers("VIEWER"))
    assert response.status_code == 200
    return response.json()


def test_add_line_captures_snapshot_and_variance(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Gloves", sku="GLV-1")
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=10)
    session = open_session(client, stock.headers(), stock.location)

    response = count_item(client, stock.headers(), session["id"], item, 8, notes="top shelf")
    assert response.status_code == 201
    assert response.json()["variance"] == -2
    assert response.json()["created"] is True

    line = _detail(client, stock, session["id"])["lines"][0]
    assert line["item_name"] == "Gloves"
    assert line["sku"] == "GLV-1"
    assert line["counted_quantity"] == 8
    assert line["system_quantity"] == 10
    assert line["variance"] == -2
    assert line["notes"] == "top shelf"


def test_add_line_without_ledger_row_uses_zero_snapshot(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Swabs")
    session = open_session(client, stock.headers(), stock.location)

    response = count_item(client, stock.headers(), session["id"], item, 5)
    assert response.status_code == 201
    assert response.json()["variance"] == 5
    assert _detail(client, stock, session["id"])["lines"][0]["system_quantity"] == 0


def test_re_adding_item_updates_line_in_place(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Scissors")
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=3)
    session = open_session(client, stock.headers(), stock.location)

    first = count_item(client, stock.headers(), session["id"], item, 1, notes="drawer")
    second = count_item(client, stock.headers(), session["id"], item, 4)
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["line_id"] == first.json()["line_id"]
    assert second.json()["variance"] == 1

    lines = _detail(client, stock, session["id"])["lines"]
    assert len(lines) == 1
    assert lines[0]["counted_quantity"] == 4
    assert lines[0]["notes"] == "drawer"

    actions = db_session.execute(select(AuditEvent.action).order_by(AuditEvent.created_at)).scalars().all()
    assert "stock_count_line.added" in actions
    assert "stock_count_line.updated" in actions


def test_re_adding_item_recaptures_snapshot(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Thermometer")
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=10)
    session = open_session(client, stock.headers(), stock.location)
    count_item(client, stock.headers(), session["id"], item, 9)

    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=12)
    response = count_item(client, stock.headers(), session["id"], item, 9)
    assert response.json()["variance"] == -3
    assert _detail(client, stock, session["id"])["lines"][0]["system_quantity"] == 12


@pytest.mark.parametrize("counted", [-1, 2.5, True, "7"])
def test_add_line_rejects_invalid_quantities(client, db_session, stock, counted):
    item = create_item(db_session, stock.tenant, name="Pads")
    session = open_session(client, stock.headers(), stock.location)

    response = client.post(
        f"/tally/stock-counts/{session['id']}/lines",
        headers=stock.headers(),
        json={"item_id": str(item.id), "counted_quantity": counted},
    )
    assert response.status_code == 422
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code
    assert _detail(client, stock, session["id"])["lines"] == []


def test_add_line_unknown_or_foreign_item(client, db_session, stock):
    other_tenant, _location = create_tenant(db_session, suffix="foreign")
    foreign_item = create_item(db_session, other_tenant, name="Foreign")
    session = open_session(client, stock.headers(), stock.location)

    response = count_item(client, stock.headers(), session["id"], foreign_item, 1)
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.NOT_FOUND.code


def test_viewer_cannot_edit_lines(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Cotton")
    session = open_session(client, stock.headers(), stock.location)

    response = count_item(client, stock.headers("VIEWER"), session["id"], item, 1)
    assert response.status_code == 403


def test_update_line_keeps_original_snapshot(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Needles")
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=10)
    session = open_session(client, stock.headers(), stock.location)
    line = count_item(client, stock.headers(), session["id"], item, 8, notes="box A").json()

    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=15)
    response = client.patch(
        f"/tally/stock-counts/lines/{line['line_id']}",
        headers=stock.headers(),
        json={"counted_quantity": 7},
    )
    assert response.status_code == 200
    assert response.json()["variance"] == -3

    detail_line = _detail(client, stock, session["id"])["lines"][0]
    assert detail_line["system_quantity"] == 10
    assert detail_line["counted_quantity"] == 7
    assert detail_line["notes"] == "box A"


def test_update_line_does_not_hide_concurrent_move(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Sutures")
    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=10)
    session = open_session(client, stock.headers(), stock.location)
    line = count_item(client, stock.headers(), session["id"], item, 8).json()

    set_inventory(db_session, tenant=stock.tenant, location=stock.location, item=item, quantity=15)
    client.patch(
        f"/tally/stock-counts/lines/{line['line_id']}",
        headers=stock.headers(),
        json={"counted_quantity": 7},
    )

    response = complete(client, stock.headers(), session["id"])
    assert response.status_code == 409
    assert response.json()["details"]["changes"][0]["system_at_count"] == 10
    assert response.json()["details"]["changes"][0]["system_now"] == 15


def test_remove_line(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Splint")
    session = open_session(client, stock.headers(), stock.location)
    line = count_item(client, stock.headers(), session["id"], item, 2).json()

    response = client.delete(f"/tally/stock-counts/lines/{line['line_id']}", headers=stock.headers())
    assert response.status_code == 204
    assert _detail(client, stock, session["id"])["lines"] == []

    again = client.delete(f"/tally/stock-counts/lines/{line['line_id']}", headers=stock.headers())
    assert again.status_code == 404


def test_lines_frozen_after_completion(client, db_session, stock):
    item = create_item(db_session, stock.tenant, name="Cast")
    other = create_item(db_session, stock.tenant, name="Sling")
    session = open_session(client, stock.headers(), stock.location)
    line = count_item(client, stock.headers(), session["id"], item, 2).json()
    assert complete(client, stock.headers(), session["id"]).status_code == 200

    added = count_item(client, stock.headers(), session["id"], other, 1)
    assert added.status_code == 422
    assert added.json()["message"] == "Cannot edit completed session"

    patched = client.patch(
        f"/tally/stock-counts/lines/{line['line_id']}",
        headers=stock.headers(),
        json={"counted_quantity": 9},
    )
    assert patched.status_code == 422
    removed = client.delete(f"/tally/stock-counts/lines/{line['line_id']}", headers=stock.headers())
    assert removed.status_code == 422


def test_lines_ordered_by_item_name(client, db_session, stock):
    names = ["Zinc", "Alcohol", "Mesh"]
    items = [create_item(db_session, stock.tenant, name=name) for name in names]
    session = open_session(client, stock.headers(), stock.location)
    for item in items:
        count_item(client, stock.headers(), session["id"], item, 1)

    lines = _detail(client, stock, session["id"])["lines"]
    assert [line["item_name"] for line in lines] == ["Alcohol", "Mesh", "Zinc"]
