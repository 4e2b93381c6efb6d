from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.roles import STAFF_MANAGER_ROLES, normalize_role
from pulse.deps import ensure_same_tenant, get_current_account
from pulse.models.staff_account import StaffAccount
from pulse.schemas.staff import ProfileRead
from pulse.services.profile import build_profile

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("/me", response_model=ProfileRead)
def read_own_profile(account: StaffAccount = Depends(get_current_account), db: Session = Depends(get_db)):
    return build_profile(db, account)


@router.get("/{account_id}", response_model=ProfileRead)
def read_profile(
    account_id: int,
    request: Request,
    account: StaffAccount = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    if account_id == account.id:
        return build_profile(db, account)
    if normalize_role(account.role) not in STAFF_MANAGER_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")

    target = db.query(StaffAccount).filter(StaffAccount.id == account_id).first()
    target = ensure_same_tenant(account, target, request)
    return build_profile(db, target)
