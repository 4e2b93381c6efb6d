from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.errors import ErrorCode, http_error
from pulse.core.roles import ROLE_ADMIN, ROLE_OWNER, STAFF_MANAGER_ROLES
from pulse.deps import ensure_same_tenant, require_role
from pulse.models.staff_account import StaffAccount
from pulse.schemas.pin import ResetPinRequest
from pulse.schemas.staff import StaffCreate, StaffRead
from pulse.services.staff_admin import (
    StaffCodeConflict,
    build_login_link,
    create_staff,
    deactivate_staff,
    reset_staff_pin,
)

router = APIRouter(prefix="/api/staff", tags=["staff"])


def _serialize(db: Session, staff: StaffAccount) -> dict:
    return {
        "id": staff.id,
        "tenant_id": staff.tenant_id,
        "full_name": staff.full_name,
        "role": staff.role,
        "staff_code": staff.staff_code,
        "is_active": bool(staff.is_active),
        "must_change_pin": bool(staff.must_change_pin),
        "login_link": build_login_link(db, staff),
    }


def _load_target(db: Session, staff_id: int, actor: StaffAccount, request: Request) -> StaffAccount:
    target = db.query(StaffAccount).filter(StaffAccount.id == staff_id).first()
    return ensure_same_tenant(actor, target, request)


@router.get("", response_model=List[StaffRead])
def list_staff(
    actor: StaffAccount = Depends(require_role(STAFF_MANAGER_ROLES)),
    db: Session = Depends(get_db),
):
    members = (
        db.query(StaffAccount)
        .filter(StaffAccount.tenant_id == actor.tenant_id, StaffAccount.role != ROLE_OWNER)
        .order_by(StaffAccount.id.asc())
        .all()
    )
    return [_serialize(db, member) for member in members]


@router.post("", response_model=StaffRead, status_code=status.HTTP_201_CREATED)
def provision_staff(
    payload: StaffCreate,
    actor: StaffAccount = Depends(require_role(STAFF_MANAGER_ROLES)),
    db: Session = Depends(get_db),
):
    try:
        staff = create_staff(
            db,
            actor=actor,
            full_name=payload.full_name,
            role=payload.role,
            staff_code=payload.staff_code,
            pin=payload.pin,
        )
    except StaffCodeConflict as exc:
        raise http_error(status_code=status.HTTP_409_CONFLICT, code=ErrorCode.CONFLICT, message=str(exc)) from exc
    except ValueError as exc:
        raise http_error(
            status_code=422,
            code=ErrorCode.VALIDATION_ERROR,
            message=str(exc),
        ) from exc
    return _serialize(db, staff)


@router.post("/{staff_id}/pin/reset", response_model=StaffRead)
def reset_pin(
    staff_id: int,
    payload: ResetPinRequest,
    request: Request,
    actor: StaffAccount = Depends(require_role(STAFF_MANAGER_ROLES)),
    db: Session = Depends(get_db),
):
    target = _load_target(db, staff_id, actor, request)
    if target.role == ROLE_OWNER:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Owner PINs cannot be reset here")
    return _serialize(db, reset_staff_pin(db, actor=actor, staff=target, pin=payload.pin))


@router.post("/{staff_id}/deactivate", response_model=StaffRead)
def deactivate(
    staff_id: int,
    request: Request,
    actor: StaffAccount = Depends(require_role([ROLE_OWNER, ROLE_ADMIN])),
    db: Session = Depends(get_db),
):
    target = _load_target(db, staff_id, actor, request)
    try:
        staff = deactivate_staff(db, actor=actor, staff=target)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _serialize(db, staff)


@router.get("/{staff_id}/login-link")
def login_link(
    staff_id: int,
    request: Request,
    actor: StaffAccount = Depends(require_role(STAFF_MANAGER_ROLES)),
    db: Session = Depends(get_db),
):
    target = _load_target(db, staff_id, actor, request)
    return {"staff_id": target.id, "login_link": build_login_link(db, target)}
