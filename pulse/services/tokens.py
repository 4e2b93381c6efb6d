from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import JWTError, jwt

from pulse.core.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    REFRESH_TOKEN_MAX_AGE_SECONDS,
    REFRESH_TOKEN_SECRET,
)

REFRESH_TOKEN_SALT = "pulse-refresh"


class InvalidTokenError(ValueError):
    pass


def create_access_token(
    account_id: int,
    *,
    tenant_id: int,
    role: str,
    expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
) -> str:
    """Signed JWT for API calls.

    "sub" must be a string, so the account id is stringified.
    """
    if not JWT_SECRET_KEY:
        raise RuntimeError("JWT_SECRET_KEY is not configured.")
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(account_id),
        "tenant_id": int(tenant_id),
        "role": role,
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError("Invalid or expired token") from exc
    if payload.get("type") != "access":
        raise InvalidTokenError("Invalid or expired token")
    return payload


def _refresh_serializer() -> URLSafeTimedSerializer:
    if not REFRESH_TOKEN_SECRET:
        raise RuntimeError("REFRESH_TOKEN_SECRET is not configured.")
    return URLSafeTimedSerializer(REFRESH_TOKEN_SECRET, salt=REFRESH_TOKEN_SALT)


def create_refresh_token(account_id: int, *, tenant_id: int) -> str:
    return _refresh_serializer().dumps(
        {
            "account_id": int(account_id),
            "tenant_id": int(tenant_id),
            "exp": int(time.time()) + REFRESH_TOKEN_MAX_AGE_SECONDS,
        }
    )


def decode_refresh_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        payload = _refresh_serializer().loads(token, max_age=REFRESH_TOKEN_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired, ValueError):
        return None
    exp = payload.get("exp")
    if exp is not None:
        try:
            if int(exp) < int(time.time()):
                return None
        except (TypeError, ValueError):
            return None
    return payload


def issue_session(account) -> Dict[str, Any]:
    """Token pair handed to the console after a successful credential exchange."""
    return {
        "access_token": create_access_token(account.id, tenant_id=account.tenant_id, role=account.role),
        "refresh_token": create_refresh_token(account.id, tenant_id=account.tenant_id),
        "token_type": "bearer",
        "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "user": {"id": account.id, "tenant_id": account.tenant_id, "role": account.role},
    }
