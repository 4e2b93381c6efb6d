from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

from pulse.console.api_client import PulseApiClient
from pulse.console.errors import TenantNotFound

TENANT_ONLY_PREFIX = "staff"


@dataclass(frozen=True)
class StaffDescriptor:
    id: int
    full_name: str
    staff_code: str


@dataclass(frozen=True)
class LinkTarget:
    tenant_id: int
    business_name: str
    staff: Optional[StaffDescriptor] = None

    @property
    def greeting(self) -> Optional[str]:
        if self.staff is None:
            return None
        return f"Hello, {self.staff.full_name}"


def parse_link(path: str) -> Tuple[str, Optional[str]]:
    """Split a shareable login link into (tenant shorthand, staff shorthand).

    ``/staff/{tenantId}`` is the tenant-only form and yields no staff shorthand.
    Full URLs are accepted; only the path is read.
    """
    raw = urlparse(path or "").path if "://" in (path or "") else (path or "")
    segments = [unquote(segment).strip() for segment in raw.split("/") if segment.strip()]

    if len(segments) == 2 and segments[0].lower() == TENANT_ONLY_PREFIX and segments[1].isdigit():
        return segments[1], None
    if len(segments) == 2:
        return segments[0], segments[1]
    if len(segments) == 1:
        return segments[0], None
    raise TenantNotFound("Invalid login link.")


class CodeResolver:
    """Client side of link resolution. Stateless; safe to call again when the link changes."""

    def __init__(self, api: PulseApiClient):
        self._api = api

    async def resolve(self, path: str) -> LinkTarget:
        tenant_code, staff_code = parse_link(path)
        payload = await self._api.resolve_link(tenant_code, staff_code)
        staff = payload.get("staff")
        return LinkTarget(
            tenant_id=int(payload["tenant_id"]),
            business_name=payload.get("business_name") or "",
            staff=(
                StaffDescriptor(
                    id=int(staff["id"]),
                    full_name=staff["full_name"],
                    staff_code=staff["staff_code"],
                )
                if staff
                else None
            ),
        )
