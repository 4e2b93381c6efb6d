from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from pulse.core.config import PIN_MAX_FAILED_ATTEMPTS
from pulse.models.pin_attempt import PinAttempt


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_pin_attempt(db: Session, tenant_id: int, staff_id: Optional[int]) -> Optional[PinAttempt]:
    query = db.query(PinAttempt).filter(PinAttempt.tenant_id == tenant_id)
    if staff_id is None:
        query = query.filter(PinAttempt.staff_id.is_(None))
    else:
        query = query.filter(PinAttempt.staff_id == staff_id)
    return query.first()


def is_locked(attempt: Optional[PinAttempt]) -> bool:
    return bool(attempt is not None and attempt.locked)


def check_pin_lock(db: Session, tenant_id: int, staff_id: Optional[int]) -> Tuple[bool, Optional[PinAttempt]]:
    attempt = get_pin_attempt(db, tenant_id, staff_id)
    return is_locked(attempt), attempt


def register_failed_pin(
    db: Session,
    tenant_id: int,
    staff_id: Optional[int],
    *,
    max_attempts: int = PIN_MAX_FAILED_ATTEMPTS,
) -> Tuple[PinAttempt, bool, int]:
    """Count one failure; returns (attempt, locked_now, attempts_remaining).

    The counter never decays with time: only a successful verification or an
    administrative reset brings it back to zero.
    """
    now = _now()
    attempt = get_pin_attempt(db, tenant_id, staff_id)
    if attempt is None:
        attempt = PinAttempt(
            tenant_id=tenant_id,
            staff_id=staff_id,
            failed_count=1,
            locked=False,
            first_failed_at=now,
            last_failed_at=now,
        )
        db.add(attempt)
    else:
        attempt.failed_count = (attempt.failed_count or 0) + 1
        attempt.last_failed_at = now

    locked_now = False
    if attempt.failed_count >= max_attempts and not attempt.locked:
        attempt.locked = True
        attempt.locked_at = now
        locked_now = True

    remaining = max(max_attempts - attempt.failed_count, 0)
    return attempt, locked_now, remaining


def clear_pin_attempts(db: Session, tenant_id: int, staff_id: Optional[int]) -> None:
    attempt = get_pin_attempt(db, tenant_id, staff_id)
    if attempt is None:
        return
    db.delete(attempt)
