from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from pulse.core.roles import ROLE_OWNER, landing_route_for
from pulse.models.staff_account import StaffAccount
from pulse.models.tenant import Tenant
from pulse.services.audit import log_credential_event
from pulse.services.passwords import verify_pin
from pulse.services.pin_attempts import check_pin_lock, clear_pin_attempts, register_failed_pin
from pulse.services.pin_policy import is_pin_stale, pin_reference_time, utcnow
from pulse.services.tokens import issue_session

logger = logging.getLogger(__name__)

INVALID_PIN_MESSAGE = "Invalid PIN. Try again."
LOCKED_MESSAGE = "PIN locked. Please contact your manager to reset."
TENANT_MISSING_MESSAGE = "Business not found."


def _locked_response() -> Dict[str, Any]:
    return {"success": False, "locked": True, "error": LOCKED_MESSAGE}


def _load_tenant(db: Session, tenant_id: int) -> Optional[Tenant]:
    return db.query(Tenant).filter(Tenant.id == tenant_id, Tenant.is_active.is_(True)).first()


def _load_staff(db: Session, tenant_id: int, staff_id: int) -> Optional[StaffAccount]:
    return (
        db.query(StaffAccount)
        .filter(
            StaffAccount.id == staff_id,
            StaffAccount.tenant_id == tenant_id,
            StaffAccount.role != ROLE_OWNER,
        )
        .first()
    )


def _match_roster(db: Session, tenant_id: int, pin: str) -> Optional[StaffAccount]:
    """Find the single active staff account whose PIN matches.

    An ambiguous match (two accounts sharing a PIN) is treated as no match.
    """
    roster = (
        db.query(StaffAccount)
        .filter(
            StaffAccount.tenant_id == tenant_id,
            StaffAccount.role != ROLE_OWNER,
            StaffAccount.is_active.is_(True),
            StaffAccount.pin_hash.isnot(None),
        )
        .all()
    )
    matched = [account for account in roster if verify_pin(pin, account.pin_hash)]
    if len(matched) != 1:
        return None
    return matched[0]


def _register_failure(db: Session, tenant_id: int, staff_id: Optional[int]) -> Dict[str, Any]:
    attempt, locked_now, remaining = register_failed_pin(db, tenant_id, staff_id)
    log_credential_event(
        db,
        tenant_id=tenant_id,
        actor_id=staff_id,
        action="pin_login_failed",
        entity_id=staff_id,
        meta={"failed_count": attempt.failed_count},
    )
    if locked_now:
        log_credential_event(
            db,
            tenant_id=tenant_id,
            actor_id=staff_id,
            action="pin_locked",
            entity_id=staff_id,
        )
        logger.warning("PIN lockout tripped tenant_id=%s staff_id=%s", tenant_id, staff_id)
    db.commit()
    return {"success": False, "attempts_remaining": remaining, "error": INVALID_PIN_MESSAGE}


def verify_pin_login(
    db: Session,
    *,
    pin: str,
    tenant_id: int,
    staff_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Check a PIN for a tenant and, on success, open a session.

    With ``staff_id`` (staff link) only that account is considered and failures
    count against it. Without it (tenant link) the PIN is matched across the
    tenant's roster; failures that match nobody count against the tenant's
    anonymous attempt row.
    """
    tenant = _load_tenant(db, tenant_id)
    if tenant is None:
        return {"success": False, "error": TENANT_MISSING_MESSAGE}

    if staff_id is not None:
        account = _load_staff(db, tenant.id, staff_id)
        attempt_key = account.id if account is not None else None
        locked, _ = check_pin_lock(db, tenant.id, attempt_key)
        if locked:
            log_credential_event(db, tenant_id=tenant.id, actor_id=attempt_key, action="pin_login_locked", entity_id=attempt_key)
            db.commit()
            return _locked_response()
        if account is None or not account.is_active or not verify_pin(pin, account.pin_hash):
            return _register_failure(db, tenant.id, attempt_key)
    else:
        anonymous_locked, _ = check_pin_lock(db, tenant.id, None)
        if anonymous_locked:
            log_credential_event(db, tenant_id=tenant.id, actor_id=None, action="pin_login_locked")
            db.commit()
            return _locked_response()
        account = _match_roster(db, tenant.id, pin)
        if account is None:
            return _register_failure(db, tenant.id, None)
        locked, _ = check_pin_lock(db, tenant.id, account.id)
        if locked:
            log_credential_event(db, tenant_id=tenant.id, actor_id=account.id, action="pin_login_locked", entity_id=account.id)
            db.commit()
            return _locked_response()

    now = now or utcnow()
    clear_pin_attempts(db, tenant.id, account.id)
    pin_expired = is_pin_stale(pin_reference_time(account), now)
    log_credential_event(
        db,
        tenant_id=tenant.id,
        actor_id=account.id,
        action="pin_login_success",
        entity_id=account.id,
        meta={"must_change_pin": bool(account.must_change_pin), "pin_expired": pin_expired},
    )
    db.commit()

    return {
        "success": True,
        "session": issue_session(account),
        "must_change_pin": bool(account.must_change_pin),
        "pin_expired": pin_expired,
        "redirect_to": landing_route_for(account.role),
    }
