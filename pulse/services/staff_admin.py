from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from pulse.core.roles import ROLE_OWNER, STAFF_ROLES, normalize_role
from pulse.models.staff_account import StaffAccount
from pulse.models.tenant import Tenant
from pulse.services.audit import log_credential_event
from pulse.services.passwords import hash_password, hash_pin
from pulse.services.pin_attempts import clear_pin_attempts
from pulse.services.pin_policy import utcnow
from pulse.utils.shortcodes import normalize_shortcode


class StaffCodeConflict(ValueError):
    pass


def ensure_staff_tables(engine: Engine) -> None:
    inspector = inspect(engine)
    missing = [table for table in ("tenants", "staff_accounts") if not inspector.has_table(table)]
    if missing:
        raise RuntimeError(
            f"Tables missing: {', '.join(missing)}. Run `alembic upgrade head` first."
        )


def staff_code_taken(db: Session, tenant_id: int, staff_code: str) -> bool:
    existing = (
        db.query(StaffAccount.id)
        .filter(
            StaffAccount.tenant_id == tenant_id,
            func.lower(StaffAccount.staff_code) == normalize_shortcode(staff_code),
        )
        .first()
    )
    return existing is not None


def create_staff(
    db: Session,
    *,
    actor: StaffAccount,
    full_name: str,
    role: str,
    staff_code: str,
    pin: str,
) -> StaffAccount:
    """Provision a staff account with an administrator-assigned PIN.

    The PIN was chosen by someone else, so the account starts in must-rotate.
    """
    role = normalize_role(role)
    if role not in STAFF_ROLES:
        raise ValueError("Invalid role")
    code = staff_code.strip()
    if not normalize_shortcode(code) or normalize_shortcode(code) != code.lower():
        raise ValueError("Staff code may only contain letters, digits, '-' and '_'")
    if staff_code_taken(db, actor.tenant_id, code):
        raise StaffCodeConflict("Staff code already in use")

    now = utcnow()
    staff = StaffAccount(
        tenant_id=actor.tenant_id,
        full_name=full_name.strip(),
        role=role,
        staff_code=code,
        pin_hash=hash_pin(pin),
        must_change_pin=True,
        pin_set_at=now,
        is_active=True,
        created_at=now,
    )
    db.add(staff)
    db.flush()
    log_credential_event(
        db,
        tenant_id=actor.tenant_id,
        actor_id=actor.id,
        action="staff_created",
        entity_id=staff.id,
        meta={"role": role, "staff_code": code},
    )
    db.commit()
    db.refresh(staff)
    return staff


def reset_staff_pin(db: Session, *, actor: StaffAccount, staff: StaffAccount, pin: str) -> StaffAccount:
    """Administrative reset: new PIN, forced rotation, lockout cleared."""
    staff.pin_hash = hash_pin(pin)
    staff.must_change_pin = True
    staff.pin_set_at = utcnow()
    clear_pin_attempts(db, staff.tenant_id, staff.id)
    log_credential_event(
        db,
        tenant_id=staff.tenant_id,
        actor_id=actor.id,
        action="pin_reset",
        entity_id=staff.id,
    )
    db.commit()
    db.refresh(staff)
    return staff


def deactivate_staff(db: Session, *, actor: StaffAccount, staff: StaffAccount) -> StaffAccount:
    if staff.role == ROLE_OWNER:
        raise ValueError("Owner accounts cannot be deactivated")
    staff.is_active = False
    log_credential_event(
        db,
        tenant_id=staff.tenant_id,
        actor_id=actor.id,
        action="staff_deactivated",
        entity_id=staff.id,
    )
    db.commit()
    db.refresh(staff)
    return staff


def build_login_link(db: Session, staff: StaffAccount) -> Optional[str]:
    tenant = db.query(Tenant).filter(Tenant.id == staff.tenant_id).first()
    if tenant is None:
        return None
    return f"/{tenant.business_code}/{staff.staff_code}"


def find_owner(db: Session, business_code: str) -> Optional[StaffAccount]:
    return (
        db.query(StaffAccount)
        .join(Tenant, Tenant.id == StaffAccount.tenant_id)
        .filter(
            func.lower(Tenant.business_code) == normalize_shortcode(business_code),
            StaffAccount.role == ROLE_OWNER,
        )
        .first()
    )


def upsert_owner(
    db: Session,
    *,
    business_name: str,
    business_code: str,
    email: str,
    full_name: str,
    password: Optional[str],
    must_change_password: bool = False,
    now: Optional[datetime] = None,
) -> tuple[StaffAccount, bool]:
    """Create (or refresh) a tenant and its owner account for the password path.

    With ``must_change_password`` a newly set password is a one-off bootstrap
    secret: the owner is sent to the password change screen on first login.
    """
    now = now or utcnow()
    code = business_code.strip()
    if not normalize_shortcode(code) or normalize_shortcode(code) != code.lower():
        raise ValueError("Business code may only contain letters, digits, '-' and '_'")
    tenant = (
        db.query(Tenant)
        .filter(func.lower(Tenant.business_code) == normalize_shortcode(code))
        .first()
    )
    if tenant is None:
        tenant = Tenant(business_name=business_name, business_code=code, is_active=True)
        db.add(tenant)
        db.flush()

    email = email.strip().lower()
    owner = (
        db.query(StaffAccount)
        .filter(StaffAccount.tenant_id == tenant.id, StaffAccount.role == ROLE_OWNER)
        .first()
    )
    if owner:
        owner.full_name = full_name
        owner.email = email
        owner.is_active = True
        if password:
            owner.password_hash = hash_password(password)
            owner.must_change_password = must_change_password
        db.commit()
        db.refresh(owner)
        return owner, False

    if not password:
        raise ValueError("A password is required to create a new owner.")

    owner = StaffAccount(
        tenant_id=tenant.id,
        full_name=full_name,
        role=ROLE_OWNER,
        staff_code="owner",
        email=email,
        password_hash=hash_password(password),
        must_change_password=must_change_password,
        must_change_pin=False,
        is_active=True,
        created_at=now,
    )
    db.add(owner)
    db.commit()
    db.refresh(owner)
    return owner, True
