from sqlalchemy import select

from app.tally.core.config import settings
from app.tally.core.security import get_password_hash
from app.tally.db.models import Location, Tenant, User


def _get_or_create_tenant(db):
    tenant = db.execute(select(Tenant).where(Tenant.name == settings.DEFAULT_TENANT_NAME)).scalars().first()
    if tenant:
        return tenant
    tenant = Tenant(name=settings.DEFAULT_TENANT_NAME)
    db.add(tenant)
    db.flush()
    return tenant


def _get_or_create_location(db, tenant):
    location = (
        db.execute(
            select(Location).where(Location.tenant_id == tenant.id, Location.name == settings.DEFAULT_LOCATION_NAME)
        )
        .scalars()
        .first()
    )
    if location:
        return location
    location = Location(
        tenant_id=tenant.id,
        name=settings.DEFAULT_LOCATION_NAME,
        code=settings.DEFAULT_LOCATION_CODE,
    )
    db.add(location)
    db.flush()
    return location


def _get_or_create_admin(db, tenant):
    user = (
        db.execute(select(User).where(User.username == settings.ADMIN_USERNAME, User.tenant_id == tenant.id))
        .scalars()
        .first()
    )
    if user:
        return user
    user = User(
        tenant_id=tenant.id,
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL,
        hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
        role="ADMIN",
        status="active",
        must_change_password=False,
        is_active=True,
    )
    db.add(user)
    return user


def run_seed(db):
    tenant = _get_or_create_tenant(db)
    _get_or_create_location(db, tenant)
    _get_or_create_admin(db, tenant)
    db.commit()
