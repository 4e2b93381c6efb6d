# pulse/deps.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.request_context import set_request_context
from pulse.core.roles import normalize_role
from pulse.models.staff_account import StaffAccount
from pulse.services.tokens import InvalidTokenError, decode_access_token

# Swagger "Authorize" button posts the owner credentials here.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

logger = logging.getLogger(__name__)


def _extract_account_id(payload: Dict[str, Any]) -> Optional[int]:
    raw = payload.get("sub", None)
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.isdigit():
            return int(raw)
    return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_account(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> StaffAccount:
    """Read the bearer JWT, validate it and load the active account."""
    try:
        payload = decode_access_token(token)
    except InvalidTokenError:
        raise _unauthorized("Invalid or expired token")

    account_id = _extract_account_id(payload)
    if account_id is None:
        raise _unauthorized("Invalid token (no subject)")

    account = (
        db.query(StaffAccount)
        .filter(StaffAccount.id == account_id, StaffAccount.is_active.is_(True))
        .first()
    )
    if not account:
        raise _unauthorized("Account not found")

    tenant_id = payload.get("tenant_id")
    if tenant_id is not None and int(account.tenant_id) != int(tenant_id):
        raise _unauthorized("Invalid session")

    request.state.account = account
    set_request_context(tenant_id=account.tenant_id, account_id=account.id)
    return account


def _log_access_denied(
    *,
    reason: str,
    account: StaffAccount,
    tenant_id: int | None,
    request: Request,
) -> None:
    endpoint = f"{request.method} {request.url.path}"
    logger.warning(
        "Access denied (%s): account_id=%s role=%s account_tenant=%s tenant_id=%s endpoint=%s",
        reason,
        getattr(account, "id", None),
        getattr(account, "role", None),
        getattr(account, "tenant_id", None),
        tenant_id,
        endpoint,
    )


def ensure_same_tenant(account: StaffAccount, target: StaffAccount | None, request: Request) -> StaffAccount:
    """404 for missing or cross-tenant targets so ids of other tenants do not leak."""
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff account not found")
    if int(target.tenant_id) != int(account.tenant_id):
        _log_access_denied(reason="tenant_mismatch", account=account, tenant_id=target.tenant_id, request=request)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff account not found")
    return target


def require_role(roles: Iterable[str]):
    allowed = {normalize_role(role) for role in roles}

    def _dependency(
        request: Request,
        account: StaffAccount = Depends(get_current_account),
    ) -> StaffAccount:
        if normalize_role(account.role) not in allowed:
            _log_access_denied(
                reason="role_denied",
                account=account,
                tenant_id=account.tenant_id,
                request=request,
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return account

    return _dependency
