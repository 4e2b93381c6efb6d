"""Reusable data and seeding helpers for backend and console scenarios."""

from datetime import datetime

from dateutil.relativedelta import relativedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pulse.core.database import Base
from pulse.models.staff_account import StaffAccount
from pulse.models.tenant import Tenant
from pulse.services.passwords import hash_password, hash_pin

ACME_TENANT = {
    "id": 1,
    "business_name": "Acme Medical Supply",
    "business_code": "ACME",
}

OTHER_TENANT = {
    "id": 2,
    "business_name": "Globex Health",
    "business_code": "GLOBEX",
}

ACME_OWNER = {
    "id": 1,
    "tenant_id": 1,
    "full_name": "Olivia Owner",
    "role": "owner",
    "staff_code": "owner",
    "email": "owner@acmesupply.com",
    "password": "correct horse battery",
}

JANE_DOE = {
    "id": 2,
    "tenant_id": 1,
    "full_name": "Jane Doe",
    "role": "delivery",
    "staff_code": "JD01",
    "pin": "482913",
}

MIKE_MANAGER = {
    "id": 3,
    "tenant_id": 1,
    "full_name": "Mike Manager",
    "role": "manager",
    "staff_code": "MM01",
    "pin": "135790",
}

GLOBEX_OWNER = {
    "id": 10,
    "tenant_id": 2,
    "full_name": "Grace Globex",
    "role": "owner",
    "staff_code": "owner",
    "email": "owner@globexhealth.com",
    "password": "another secret",
}

GLOBEX_STAFF = {
    "id": 11,
    "tenant_id": 2,
    "full_name": "Gary Globex",
    "role": "staff",
    "staff_code": "GG01",
    "pin": "246802",
}


def build_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def add_owner(db, data: dict, *, now: datetime) -> StaffAccount:
    owner = StaffAccount(
        id=data["id"],
        tenant_id=data["tenant_id"],
        full_name=data["full_name"],
        role=data["role"],
        staff_code=data["staff_code"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
        must_change_pin=False,
        is_active=True,
        created_at=now,
    )
    db.add(owner)
    return owner


def add_staff(
    db,
    data: dict,
    *,
    now: datetime,
    must_change_pin: bool = False,
    rotated_months_ago: int | None = 0,
    is_active: bool = True,
) -> StaffAccount:
    """Staff member with a PIN; ``rotated_months_ago=None`` means never self-rotated."""
    pin_changed_at = None
    if rotated_months_ago is not None:
        pin_changed_at = now - relativedelta(months=rotated_months_ago)
    staff = StaffAccount(
        id=data["id"],
        tenant_id=data["tenant_id"],
        full_name=data["full_name"],
        role=data["role"],
        staff_code=data["staff_code"],
        pin_hash=hash_pin(data["pin"]),
        must_change_pin=must_change_pin,
        pin_set_at=now - relativedelta(months=6) if pin_changed_at is not None else now,
        pin_changed_at=pin_changed_at,
        is_active=is_active,
        created_at=now - relativedelta(months=12),
    )
    db.add(staff)
    return staff


def seed_acme(db, *, now: datetime, jane_overrides: dict | None = None) -> None:
    db.add(Tenant(**ACME_TENANT))
    db.add(Tenant(**OTHER_TENANT))
    add_owner(db, ACME_OWNER, now=now)
    add_staff(db, JANE_DOE, now=now, **(jane_overrides or {}))
    add_staff(db, MIKE_MANAGER, now=now)
    add_owner(db, GLOBEX_OWNER, now=now)
    add_staff(db, GLOBEX_STAFF, now=now)
    db.commit()
