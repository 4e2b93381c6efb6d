from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pulse.console.api_client import PulseApiClient
from pulse.console.errors import ConsoleError
from pulse.core.roles import normalize_role

logger = logging.getLogger(__name__)


@dataclass
class Profile:
    id: int
    tenant_id: int
    role: str
    full_name: str
    owner_id: Optional[int] = None
    staff_code: Optional[str] = None
    must_change_password: bool = False
    must_change_pin: bool = False
    pin_expired: bool = False
    pin_changed_at: Optional[str] = None
    pin_set_at: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Profile":
        return cls(
            id=int(payload["id"]),
            tenant_id=int(payload["tenant_id"]),
            role=normalize_role(payload.get("role")),
            full_name=payload.get("full_name") or "",
            owner_id=payload.get("owner_id"),
            staff_code=payload.get("staff_code"),
            must_change_password=bool(payload.get("must_change_password")),
            must_change_pin=bool(payload.get("must_change_pin")),
            pin_expired=bool(payload.get("pin_expired")),
            pin_changed_at=payload.get("pin_changed_at"),
            pin_set_at=payload.get("pin_set_at"),
            created_at=payload.get("created_at"),
        )

    @property
    def must_rotate_pin(self) -> bool:
        return self.must_change_pin or self.pin_expired


class SessionContext:
    """Process-wide auth state for one console, passed explicitly to whoever needs it.

    Every transition (begin, refresh, clear) bumps ``generation``; a profile
    load that finishes under an older generation is dropped.
    """

    def __init__(self, api: PulseApiClient):
        self.api = api
        self.generation = 0
        self.tokens: Optional[Dict[str, Any]] = None
        self.profile: Optional[Profile] = None
        self._loading_generation: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.tokens is not None

    @property
    def loading(self) -> bool:
        return self._loading_generation is not None and self._loading_generation == self.generation

    @property
    def account_id(self) -> Optional[int]:
        if self.profile is not None:
            return self.profile.id
        user = (self.tokens or {}).get("user") or {}
        return user.get("id")

    async def begin(self, session: Dict[str, Any]) -> Optional[Profile]:
        """Adopt a freshly issued token pair and load the matching profile.

        Returns None when a newer transition superseded this one.
        """
        self.generation += 1
        generation = self.generation
        self.tokens = session
        self.profile = None
        self.api.access_token = session.get("access_token")
        user = session.get("user") or {}
        return await self._load_profile(generation, user.get("id"))

    async def _load_profile(self, generation: int, account_id: Optional[int]) -> Optional[Profile]:
        self._loading_generation = generation
        try:
            payload = await self.api.get_profile(account_id)
        except ConsoleError:
            if generation != self.generation:
                return None
            logger.warning("Profile load failed; clearing session account_id=%s", account_id)
            self.clear()
            raise
        if generation != self.generation:
            logger.info("Discarding stale profile load generation=%s current=%s", generation, self.generation)
            return None
        self.profile = Profile.from_payload(payload)
        self._loading_generation = None
        return self.profile

    async def refresh(self) -> Optional[Profile]:
        refresh_token = (self.tokens or {}).get("refresh_token")
        if not refresh_token:
            raise ConsoleError("No active session.")
        try:
            session = await self.api.refresh(refresh_token)
        except ConsoleError:
            self.clear()
            raise
        return await self.begin(session)

    async def logout(self) -> None:
        if self.is_authenticated:
            try:
                await self.api.logout()
            except ConsoleError as exc:
                logger.info("Logout call failed: %s", exc.message)
        self.clear()

    def clear(self) -> None:
        self.generation += 1
        self.tokens = None
        self.profile = None
        self._loading_generation = None
        self.api.access_token = None
