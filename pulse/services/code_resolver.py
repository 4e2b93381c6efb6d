from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from pulse.core.roles import ROLE_OWNER
from pulse.models.staff_account import StaffAccount
from pulse.models.tenant import Tenant
from pulse.utils.shortcodes import normalize_shortcode, parse_internal_id

logger = logging.getLogger(__name__)


class CodeResolutionError(Exception):
    code = "resolution_failed"
    message = "Invalid login link."


class TenantNotFound(CodeResolutionError):
    code = "tenant_not_found"
    message = "Business not found."


class StaffNotFound(CodeResolutionError):
    code = "staff_not_found"
    message = "Staff not found."


@dataclass(frozen=True)
class StaffDescriptor:
    id: int
    full_name: str
    staff_code: str


@dataclass(frozen=True)
class ResolvedLink:
    tenant_id: int
    business_name: str
    staff: StaffDescriptor | None = None


class CodeResolver:
    """Resolve login-link shorthands to a tenant and, optionally, a staff member.

    Pure lookups: nothing is written and no session is created.
    """

    @staticmethod
    def _owner_exists(db: Session, tenant_id: int) -> bool:
        owner = (
            db.query(StaffAccount.id)
            .filter(
                StaffAccount.tenant_id == tenant_id,
                StaffAccount.role == ROLE_OWNER,
                StaffAccount.is_active.is_(True),
            )
            .first()
        )
        return owner is not None

    @classmethod
    def resolve_tenant(cls, db: Session, tenant_shorthand: str) -> Tenant:
        raw = (tenant_shorthand or "").strip()
        if not raw:
            raise TenantNotFound()

        tenant: Tenant | None = None
        internal_id = parse_internal_id(raw)
        if internal_id is not None:
            candidate = db.query(Tenant).filter(Tenant.id == internal_id, Tenant.is_active.is_(True)).first()
            if candidate is not None and cls._owner_exists(db, candidate.id):
                tenant = candidate

        if tenant is None:
            code = normalize_shortcode(raw)
            if code:
                tenant = (
                    db.query(Tenant)
                    .filter(func.lower(Tenant.business_code) == code, Tenant.is_active.is_(True))
                    .first()
                )

        if tenant is None:
            logger.info("Tenant resolution failed shorthand=%s", raw)
            raise TenantNotFound()
        return tenant

    @staticmethod
    def resolve_staff(db: Session, tenant_id: int, staff_shorthand: str) -> StaffAccount:
        code = normalize_shortcode(staff_shorthand)
        if not code:
            raise StaffNotFound()

        staff = (
            db.query(StaffAccount)
            .filter(
                StaffAccount.tenant_id == tenant_id,
                func.lower(StaffAccount.staff_code) == code,
                StaffAccount.role != ROLE_OWNER,
            )
            .first()
        )
        if staff is None:
            logger.info("Staff resolution failed tenant_id=%s shorthand=%s", tenant_id, staff_shorthand)
            raise StaffNotFound()
        return staff

    @classmethod
    def resolve_link(cls, db: Session, tenant_shorthand: str, staff_shorthand: str | None = None) -> ResolvedLink:
        tenant = cls.resolve_tenant(db, tenant_shorthand)
        if staff_shorthand is None:
            return ResolvedLink(tenant_id=tenant.id, business_name=tenant.business_name)

        staff = cls.resolve_staff(db, tenant.id, staff_shorthand)
        return ResolvedLink(
            tenant_id=tenant.id,
            business_name=tenant.business_name,
            staff=StaffDescriptor(id=staff.id, full_name=staff.full_name, staff_code=staff.staff_code),
        )
