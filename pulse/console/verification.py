from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pulse.console.api_client import PulseApiClient
from pulse.console.errors import InvalidPin, Locked


@dataclass(frozen=True)
class VerifyOutcome:
    success: bool
    session: Optional[Dict[str, Any]] = None
    must_change_pin: bool = False
    pin_expired: bool = False
    redirect_to: Optional[str] = None
    locked: bool = False
    attempts_remaining: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "VerifyOutcome":
        return cls(
            success=bool(payload.get("success")),
            session=payload.get("session"),
            must_change_pin=bool(payload.get("must_change_pin")),
            pin_expired=bool(payload.get("pin_expired")),
            redirect_to=payload.get("redirect_to"),
            locked=bool(payload.get("locked")),
            attempts_remaining=payload.get("attempts_remaining"),
            error=payload.get("error"),
        )

    def raise_for_failure(self) -> None:
        if self.success:
            return
        if self.locked:
            raise Locked(self.error)
        raise InvalidPin(self.error, attempts_remaining=self.attempts_remaining)


class VerificationClient:
    def __init__(self, api: PulseApiClient):
        self._api = api

    async def verify(self, pin: str, tenant_id: int, staff_id: Optional[int] = None) -> VerifyOutcome:
        payload = await self._api.verify_pin(pin=pin, tenant_id=tenant_id, staff_id=staff_id)
        return VerifyOutcome.from_payload(payload)
