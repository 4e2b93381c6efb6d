from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from pulse.core.roles import ROLE_OWNER
from pulse.models.staff_account import StaffAccount
from pulse.services.pin_policy import is_pin_stale, pin_reference_time


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def resolve_owner_id(db: Session, account: StaffAccount) -> Optional[int]:
    if account.role == ROLE_OWNER:
        return account.id
    owner = (
        db.query(StaffAccount.id)
        .filter(StaffAccount.tenant_id == account.tenant_id, StaffAccount.role == ROLE_OWNER)
        .first()
    )
    return owner[0] if owner else None


def build_profile(db: Session, account: StaffAccount, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Profile read used by the console's session bootstrap."""
    pin_expired = account.pin_hash is not None and is_pin_stale(pin_reference_time(account), now)
    return {
        "id": account.id,
        "tenant_id": account.tenant_id,
        "owner_id": resolve_owner_id(db, account),
        "full_name": account.full_name,
        "role": account.role,
        "staff_code": account.staff_code,
        "is_active": bool(account.is_active),
        "must_change_password": bool(account.must_change_password),
        "must_change_pin": bool(account.must_change_pin) if account.pin_hash else False,
        "pin_expired": pin_expired,
        "pin_changed_at": _isoformat(account.pin_changed_at),
        "pin_set_at": _isoformat(account.pin_set_at),
        "created_at": _isoformat(account.created_at),
    }
