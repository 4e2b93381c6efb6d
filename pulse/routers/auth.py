# pulse/routers/auth.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.roles import landing_route_for
from pulse.deps import get_current_account
from pulse.models.staff_account import StaffAccount
from pulse.schemas.pin import SessionTokens
from pulse.services.audit import log_credential_event
from pulse.services.passwords import hash_password, verify_password
from pulse.services.tokens import decode_refresh_token, issue_session

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


class PasswordLoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordLoginResponse(BaseModel):
    session: SessionTokens
    must_change_password: bool
    redirect_to: str


class RefreshPayload(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class PasswordChangePayload(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


def _authenticate(db: Session, email: str, password: str) -> Optional[StaffAccount]:
    normalized_email = (email or "").strip().lower()
    if not normalized_email:
        return None
    account = (
        db.query(StaffAccount)
        .filter(
            func.lower(StaffAccount.email) == normalized_email,
            StaffAccount.is_active.is_(True),
            StaffAccount.password_hash.isnot(None),
        )
        .first()
    )
    if account is None or not verify_password(password, account.password_hash):
        return None
    return account


def _password_login(db: Session, email: str, password: str) -> dict:
    account = _authenticate(db, email, password)
    if account is None:
        logger.info("Password login failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    log_credential_event(
        db,
        tenant_id=account.tenant_id,
        actor_id=account.id,
        action="password_login_success",
        entity_id=account.id,
    )
    db.commit()
    return {
        "session": issue_session(account),
        "must_change_password": bool(account.must_change_password),
        "redirect_to": landing_route_for(account.role),
    }


@router.post("/login", response_model=PasswordLoginResponse)
def password_login(payload: PasswordLoginPayload, db: Session = Depends(get_db)):
    return _password_login(db, payload.email, payload.password)


@router.post("/token")
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Used by the Swagger UI "Authorize" button (form-data username/password)."""
    result = _password_login(db, form_data.username, form_data.password)
    return {"access_token": result["session"]["access_token"], "token_type": "bearer"}


@router.post("/refresh", response_model=SessionTokens)
def refresh(payload: RefreshPayload, db: Session = Depends(get_db)):
    claims = decode_refresh_token(payload.refresh_token)
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")

    account = (
        db.query(StaffAccount)
        .filter(
            StaffAccount.id == int(claims.get("account_id") or 0),
            StaffAccount.is_active.is_(True),
        )
        .first()
    )
    if account is None or int(account.tenant_id) != int(claims.get("tenant_id") or 0):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return issue_session(account)


@router.post("/logout")
def logout(account: StaffAccount = Depends(get_current_account), db: Session = Depends(get_db)):
    log_credential_event(
        db,
        tenant_id=account.tenant_id,
        actor_id=account.id,
        action="logout",
        entity_id=account.id,
    )
    db.commit()
    return {"ok": True}


@router.post("/password/change")
def change_password(
    payload: PasswordChangePayload,
    account: StaffAccount = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Self-service password change; also clears a pending forced change."""
    if not verify_password(payload.current_password, account.password_hash):
        logger.info("Password change rejected account_id=%s", account.id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    if payload.new_password == payload.current_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password must be different from the current password",
        )

    account.password_hash = hash_password(payload.new_password)
    account.must_change_password = False
    log_credential_event(
        db,
        tenant_id=account.tenant_id,
        actor_id=account.id,
        action="password_changed",
        entity_id=account.id,
    )
    db.commit()
    return {"ok": True, "must_change_password": False, "redirect_to": landing_route_for(account.role)}
