from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from pulse.models.staff_account import StaffAccount
from pulse.services.audit import log_credential_event
from pulse.services.passwords import hash_pin, is_six_digit_pin, verify_pin
from pulse.services.pin_attempts import check_pin_lock, clear_pin_attempts, register_failed_pin
from pulse.services.pin_policy import utcnow
from pulse.services.pin_verification import LOCKED_MESSAGE

logger = logging.getLogger(__name__)


def change_own_pin(
    db: Session,
    *,
    principal: StaffAccount,
    old_pin: str,
    new_pin: str,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Self-service PIN rotation for the authenticated account."""
    if user_id is not None and int(user_id) != int(principal.id):
        logger.warning("PIN change refused: principal=%s target=%s", principal.id, user_id)
        return {"success": False, "error": "You can only change your own PIN."}

    if not is_six_digit_pin(new_pin):
        return {"success": False, "error": "New PIN must be 6 digits"}
    if new_pin == old_pin:
        return {"success": False, "error": "New PIN must be different from current PIN"}

    locked, _ = check_pin_lock(db, principal.tenant_id, principal.id)
    if locked:
        return {"success": False, "locked": True, "error": LOCKED_MESSAGE}

    if not verify_pin(old_pin, principal.pin_hash):
        attempt, locked_now, _ = register_failed_pin(db, principal.tenant_id, principal.id)
        log_credential_event(
            db,
            tenant_id=principal.tenant_id,
            actor_id=principal.id,
            action="pin_change_failed",
            entity_id=principal.id,
            meta={"failed_count": attempt.failed_count},
        )
        db.commit()
        if locked_now:
            return {"success": False, "locked": True, "error": LOCKED_MESSAGE}
        return {"success": False, "error": "Current PIN is incorrect"}

    now = now or utcnow()
    principal.pin_hash = hash_pin(new_pin)
    principal.must_change_pin = False
    principal.pin_changed_at = now
    clear_pin_attempts(db, principal.tenant_id, principal.id)
    log_credential_event(
        db,
        tenant_id=principal.tenant_id,
        actor_id=principal.id,
        action="pin_changed",
        entity_id=principal.id,
    )
    db.commit()
    return {"success": True, "pin_changed_at": now.isoformat()}
