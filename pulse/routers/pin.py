from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.request_context import set_request_context
from pulse.deps import get_current_account
from pulse.models.staff_account import StaffAccount
from pulse.schemas.pin import ChangePinRequest, ChangePinResponse, VerifyPinRequest, VerifyPinResponse
from pulse.services.pin_rotation import change_own_pin
from pulse.services.pin_verification import verify_pin_login

router = APIRouter(prefix="/api/pin", tags=["pin"])
logger = logging.getLogger(__name__)


@router.post("/verify", response_model=VerifyPinResponse, response_model_exclude_none=True)
def verify_pin(payload: VerifyPinRequest, db: Session = Depends(get_db)):
    """Business failures (wrong PIN, lockout) are 200 responses with success=false."""
    set_request_context(tenant_id=payload.tenant_id, account_id=payload.staff_id)
    result = verify_pin_login(
        db,
        pin=payload.pin,
        tenant_id=payload.tenant_id,
        staff_id=payload.staff_id,
    )
    logger.info(
        "PIN verification tenant_id=%s success=%s locked=%s",
        payload.tenant_id,
        result.get("success"),
        bool(result.get("locked")),
    )
    return result


@router.post("/change", response_model=ChangePinResponse, response_model_exclude_none=True)
def change_pin(
    payload: ChangePinRequest,
    account: StaffAccount = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return change_own_pin(
        db,
        principal=account,
        old_pin=payload.old_pin,
        new_pin=payload.new_pin,
        user_id=payload.user_id,
    )
