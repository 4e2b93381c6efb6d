from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, UniqueConstraint

from pulse.core.database import Base


class PinAttempt(Base):
    __tablename__ = "pin_attempts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "staff_id", name="uq_pin_attempts_tenant_staff"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    # NULL holds failures from tenant-only links that matched no account.
    staff_id = Column(Integer, nullable=True, index=True)
    failed_count = Column(Integer, nullable=False, default=0)
    locked = Column(Boolean, nullable=False, default=False)
    first_failed_at = Column(DateTime, nullable=True)
    last_failed_at = Column(DateTime, nullable=True)
    locked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
