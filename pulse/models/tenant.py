from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from pulse.core.database import Base


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    business_name = Column(String, nullable=False)
    # Shared in login links; matched case-insensitively.
    business_code = Column(String(32), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
