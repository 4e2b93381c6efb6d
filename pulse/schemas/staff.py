from typing import Optional

from pydantic import BaseModel, Field


class StaffDescriptorRead(BaseModel):
    id: int
    full_name: str
    staff_code: str


class ResolvedLinkRead(BaseModel):
    tenant_id: int
    business_name: str
    staff: Optional[StaffDescriptorRead] = None


class ProfileRead(BaseModel):
    id: int
    tenant_id: int
    owner_id: Optional[int] = None
    full_name: str
    role: str
    staff_code: str
    is_active: bool
    must_change_password: bool
    must_change_pin: bool
    pin_expired: bool
    pin_changed_at: Optional[str] = None
    pin_set_at: Optional[str] = None
    created_at: Optional[str] = None


class StaffCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    staff_code: str = Field(..., min_length=1, max_length=32)
    pin: str = Field(..., pattern=r"^\d{6}$")


class StaffRead(BaseModel):
    id: int
    tenant_id: int
    full_name: str
    role: str
    staff_code: str
    is_active: bool
    must_change_pin: bool
    login_link: Optional[str] = None
