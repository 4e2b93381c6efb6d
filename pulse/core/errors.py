from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException


class ErrorCode(str, Enum):
    UNAUTHORIZED = "unauthorized"  # 401
    FORBIDDEN = "forbidden"  # 403
    TENANT_NOT_FOUND = "tenant_not_found"  # 404
    STAFF_NOT_FOUND = "staff_not_found"  # 404
    NOT_FOUND = "not_found"  # 404
    CONFLICT = "conflict"  # 409
    VALIDATION_ERROR = "validation_error"  # 422


def http_error(
    *,
    status_code: int,
    code: ErrorCode,
    message: str,
    meta: Optional[Dict[str, Any]] = None,
) -> HTTPException:
    """HTTPException with a stable ``{"code", "message"}`` detail.

    The console keys on ``detail.code``; ``message`` is shown to the user.
    """
    detail: Dict[str, Any] = {
        "code": code.value,
        "message": message,
    }
    if meta:
        detail["meta"] = meta
    return HTTPException(status_code=status_code, detail=detail)
