from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint

from pulse.core.database import Base
from pulse.core.roles import ROLE_DELIVERY


class StaffAccount(Base):
    __tablename__ = "staff_accounts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "staff_code", name="uq_staff_accounts_tenant_staff_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)

    full_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_DELIVERY)
    staff_code = Column(String(32), nullable=False)

    # Password path (owners)
    email = Column(String, nullable=True, index=True)
    password_hash = Column(String, nullable=True)
    must_change_password = Column(Boolean, nullable=False, default=False)

    # PIN path
    pin_hash = Column(String, nullable=True)
    must_change_pin = Column(Boolean, nullable=False, default=True)
    pin_set_at = Column(DateTime, nullable=True)
    pin_changed_at = Column(DateTime, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
