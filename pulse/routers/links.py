from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.errors import ErrorCode, http_error
from pulse.schemas.staff import ResolvedLinkRead
from pulse.services.code_resolver import CodeResolutionError, CodeResolver, ResolvedLink, StaffNotFound

router = APIRouter(prefix="/api/links", tags=["links"])


def _not_found(exc: CodeResolutionError):
    code = ErrorCode.STAFF_NOT_FOUND if isinstance(exc, StaffNotFound) else ErrorCode.TENANT_NOT_FOUND
    return http_error(status_code=status.HTTP_404_NOT_FOUND, code=code, message=exc.message)


def _serialize(resolved: ResolvedLink) -> dict:
    staff = resolved.staff
    return {
        "tenant_id": resolved.tenant_id,
        "business_name": resolved.business_name,
        "staff": (
            {"id": staff.id, "full_name": staff.full_name, "staff_code": staff.staff_code}
            if staff is not None
            else None
        ),
    }


@router.get("/{tenant_code}", response_model=ResolvedLinkRead)
def resolve_tenant_link(tenant_code: str, db: Session = Depends(get_db)):
    try:
        resolved = CodeResolver.resolve_link(db, tenant_code)
    except CodeResolutionError as exc:
        raise _not_found(exc) from exc
    return _serialize(resolved)


@router.get("/{tenant_code}/{staff_code}", response_model=ResolvedLinkRead)
def resolve_staff_link(tenant_code: str, staff_code: str, db: Session = Depends(get_db)):
    try:
        resolved = CodeResolver.resolve_link(db, tenant_code, staff_code)
    except CodeResolutionError as exc:
        raise _not_found(exc) from exc
    return _serialize(resolved)
