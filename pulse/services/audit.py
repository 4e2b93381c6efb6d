from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from pulse.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_credential_event(
    db: Session,
    *,
    tenant_id: int,
    actor_id: Optional[int],
    action: str,
    entity_type: Optional[str] = "staff_account",
    entity_id: Optional[int] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> AuditLog:
    entry = AuditLog(
        tenant_id=tenant_id,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=json.dumps(meta) if meta else None,
    )
    db.add(entry)
    logger.info(
        "credential event action=%s tenant_id=%s actor_id=%s entity_id=%s",
        action,
        tenant_id,
        actor_id,
        entity_id,
        extra={"action": action},
    )
    return entry
