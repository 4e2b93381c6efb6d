from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from pulse.core.config import PIN_STALENESS_MONTHS

PIN_EXPIRED_MESSAGE = "Your PIN has expired."


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime | str]) -> Optional[datetime]:
    """Timestamps are stored naive-UTC; the console receives them as ISO strings."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def pin_reference_time(record: Any) -> Optional[datetime]:
    """Last self-initiated rotation, falling back to provisioning time.

    Accepts an ORM row, a profile object or a plain mapping.
    """
    for field in ("pin_changed_at", "pin_set_at", "created_at"):
        if isinstance(record, dict):
            raw = record.get(field)
        else:
            raw = getattr(record, field, None)
        value = as_naive_utc(raw)
        if value is not None:
            return value
    return None


def staleness_cutoff(now: Optional[datetime] = None, months: int = PIN_STALENESS_MONTHS) -> datetime:
    now = as_naive_utc(now) or utcnow()
    return now - relativedelta(months=months)


def is_pin_stale(
    reference: Optional[datetime | str],
    now: Optional[datetime] = None,
    months: int = PIN_STALENESS_MONTHS,
) -> bool:
    reference = as_naive_utc(reference)
    if reference is None:
        return False
    return reference < staleness_cutoff(now, months)
