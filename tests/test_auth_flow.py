from sqlalchemy import select

from app.tally.db.models import AuditEvent
from tests.stock_count_helpers import PASSWORD, auth_headers, create_tenant, create_user


def test_login_with_email_and_username(client, db_session):
    tenant, _location = create_tenant(db_session, suffix="auth")
    user = create_user(db_session, tenant, suffix="clerk", role="STAFF")

    by_email = client.post("/tally/auth/login", json={"email": user.email, "password": PASSWORD})
    assert by_email.status_code == 200
    assert by_email.json()["token_type"] == "bearer"
    assert by_email.json()["trace_id"]

    by_username = client.post("/tally/auth/login", json={"username_or_email": user.username, "password": PASSWORD})
    assert by_username.status_code == 200

    listing = client.get("/tally/stock-counts", headers=auth_headers(by_username.json()["access_token"]))
    assert listing.status_code == 200


def test_login_invalid_password_is_audited(client, db_session):
    tenant, _location = create_tenant(db_session, suffix="auth")
    user = create_user(db_session, tenant, suffix="clerk")

    response = client.post("/tally/auth/login", json={"username_or_email": user.username, "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"

    db_session.expire_all()
    event = db_session.execute(select(AuditEvent).where(AuditEvent.action == "auth.login.failed")).scalars().one()
    assert event.result == "failure"
    assert event.event_metadata["error_code"] == "INVALID_CREDENTIALS"


def test_login_requires_identifier(client):
    response = client.post("/tally/auth/login", json={"password": PASSWORD})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_login_blocked_inactive(client, db_session):
    tenant, _location = create_tenant(db_session, suffix="auth")
    user = create_user(db_session, tenant, suffix="gone", is_active=False)

    response = client.post("/tally/auth/login", json={"username_or_email": user.username, "password": PASSWORD})
    assert response.status_code == 403
    assert response.json()["code"] == "USER_INACTIVE"


def test_oauth2_token_form(client, db_session):
    tenant, _location = create_tenant(db_session, suffix="auth")
    user = create_user(db_session, tenant, suffix="swagger")

    response = client.post(
        "/tally/auth/token",
        content=f"username={user.username}&password={PASSWORD}",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    assert response.json()["access_token"]


def test_invalid_token_rejected(client):
    response = client.get("/tally/stock-counts", headers=auth_headers("not-a-token"))
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


def test_deactivated_user_token_rejected(client, db_session, stock):
    user = stock.users["STAFF"]
    user.is_active = False
    db_session.commit()

    response = client.get("/tally/stock-counts", headers=stock.headers("STAFF"))
    assert response.status_code == 403
    assert response.json()["code"] == "USER_INACTIVE"


def test_role_change_applies_to_existing_token(client, db_session, stock):
    user = stock.users["STAFF"]
    user.role = "VIEWER"
    db_session.commit()

    response = client.post(
        "/tally/stock-counts",
        headers=stock.headers("STAFF"),
        json={"location_id": str(stock.location.id)},
    )
    assert response.status_code == 403
