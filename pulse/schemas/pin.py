from typing import Optional

from pydantic import BaseModel, Field


class SessionUser(BaseModel):
    id: int
    tenant_id: int
    role: str


class SessionTokens(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: SessionUser


class VerifyPinRequest(BaseModel):
    # Login accepts 4-6 digits; rotation screens require exactly 6.
    pin: str = Field(..., pattern=r"^\d{4,6}$")
    tenant_id: int = Field(..., ge=1)
    staff_id: Optional[int] = Field(None, ge=1)


class VerifyPinResponse(BaseModel):
    success: bool
    session: Optional[SessionTokens] = None
    must_change_pin: Optional[bool] = None
    pin_expired: Optional[bool] = None
    redirect_to: Optional[str] = None
    locked: Optional[bool] = None
    attempts_remaining: Optional[int] = None
    error: Optional[str] = None


class ChangePinRequest(BaseModel):
    old_pin: str = Field(..., pattern=r"^\d{4,6}$")
    new_pin: str = Field(..., min_length=1, max_length=12)
    user_id: Optional[int] = Field(None, ge=1)


class ChangePinResponse(BaseModel):
    success: bool
    locked: Optional[bool] = None
    error: Optional[str] = None
    pin_changed_at: Optional[str] = None


class ResetPinRequest(BaseModel):
    pin: str = Field(..., pattern=r"^\d{6}$")
