from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from pulse.console.api_client import PulseApiClient
from pulse.console.errors import ConsoleError
from pulse.console.keypad import LOGIN_MIN_LENGTH, PinKeypad
from pulse.console.resolver import CodeResolver, LinkTarget
from pulse.console.route_gate import MUST_CHANGE_PIN_MESSAGE, PIN_EXPIRED_REDIRECT_MESSAGE
from pulse.console.routes import CHANGE_PASSWORD_ROUTE, CHANGE_PIN_ROUTE
from pulse.console.session import Profile, SessionContext
from pulse.console.verification import VerificationClient, VerifyOutcome
from pulse.core.roles import landing_route_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    redirect_to: str
    message: Optional[str] = None
    profile: Optional[Profile] = None


class PinLoginController:
    """Drives one PIN login screen: link resolution, keypad, verification, bootstrap."""

    def __init__(self, api: PulseApiClient, session: SessionContext):
        self.api = api
        self.session = session
        self.resolver = CodeResolver(api)
        self.verification = VerificationClient(api)
        self.target: Optional[LinkTarget] = None
        self._open_generation = 0
        self.keypad = PinKeypad(self._verify, min_length=LOGIN_MIN_LENGTH, resolved=False)

    @property
    def greeting(self) -> Optional[str]:
        return self.target.greeting if self.target is not None else None

    async def open(self, path: str) -> Optional[LinkTarget]:
        """Resolve the login link; the keypad stays disarmed until this succeeds.

        Returns None when a later open() superseded this one before it resolved.
        """
        self._open_generation += 1
        generation = self._open_generation
        self.keypad.abandon()
        self.keypad.resolved = False
        self.target = None
        try:
            target = await self.resolver.resolve(path)
        except ConsoleError:
            if generation != self._open_generation:
                logger.info("Discarding stale link resolution failure for %s", path)
                return None
            raise
        if generation != self._open_generation:
            logger.info("Discarding stale link resolution for %s", path)
            return None
        self.target = target
        self.keypad.mark_resolved()
        return target

    async def _verify(self, pin: str) -> VerifyOutcome:
        target = self.target
        staff_id = target.staff.id if target.staff is not None else None
        return await self.verification.verify(pin, target.tenant_id, staff_id)

    async def press(self, digit: str) -> Optional[LoginResult]:
        return await self._finish(await self.keypad.press_digit(digit))

    async def submit(self) -> Optional[LoginResult]:
        return await self._finish(await self.keypad.submit())

    async def _finish(self, outcome: Optional[VerifyOutcome]) -> Optional[LoginResult]:
        if outcome is None or not outcome.success:
            return None
        profile = await self.session.begin(outcome.session)
        if profile is None:
            return None
        if outcome.must_change_pin or outcome.pin_expired:
            profile.must_change_pin = profile.must_change_pin or outcome.must_change_pin
            profile.pin_expired = profile.pin_expired or outcome.pin_expired
            message = PIN_EXPIRED_REDIRECT_MESSAGE if outcome.pin_expired else MUST_CHANGE_PIN_MESSAGE
            return LoginResult(CHANGE_PIN_ROUTE, message, profile)
        return LoginResult(outcome.redirect_to or landing_route_for(profile.role), None, profile)


async def password_login(api: PulseApiClient, session: SessionContext, *, email: str, password: str) -> LoginResult:
    """Owner email + password exchange; no keypad, no lockout."""
    payload = await api.password_login(email=email, password=password)
    profile = await session.begin(payload["session"])
    if profile is None:
        raise ConsoleError("Login superseded by another session change.")
    if payload.get("must_change_password"):
        return LoginResult(CHANGE_PASSWORD_ROUTE, None, profile)
    return LoginResult(payload.get("redirect_to") or landing_route_for(profile.role), None, profile)
