from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from pulse.console.api_client import PulseApiClient
from pulse.console.errors import InvalidPin, Locked, TransportError, ValidationError
from pulse.console.session import SessionContext
from pulse.core.config import PIN_ROTATION_REDIRECT_DELAY_SECONDS
from pulse.core.roles import landing_route_for
from pulse.services.passwords import is_six_digit_pin

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 8

SleepFn = Callable[[float], Awaitable[None]]


def validate_rotation(current_pin: str, new_pin: str, confirm_pin: str) -> None:
    """Form-level checks, in order; the first failure wins."""
    if not is_six_digit_pin(current_pin):
        raise ValidationError("Current PIN must be 6 digits")
    if not is_six_digit_pin(new_pin):
        raise ValidationError("New PIN must be 6 digits")
    if new_pin != confirm_pin:
        raise ValidationError("New PIN and confirm PIN must match")
    if new_pin == current_pin:
        raise ValidationError("New PIN must be different from current PIN")


class PinRotationWorkflow:
    def __init__(
        self,
        api: PulseApiClient,
        session: SessionContext,
        *,
        delay_seconds: float = PIN_ROTATION_REDIRECT_DELAY_SECONDS,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.api = api
        self.session = session
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def resolve_user_id(self, user_id: Optional[int] = None) -> Optional[int]:
        if user_id is not None:
            return int(user_id)
        return self.session.account_id

    async def submit(
        self,
        current_pin: str,
        new_pin: str,
        confirm_pin: str,
        *,
        user_id: Optional[int] = None,
    ) -> str:
        """Rotate the PIN and return the landing route to go to afterwards."""
        validate_rotation(current_pin, new_pin, confirm_pin)
        acting_id = self.resolve_user_id(user_id)
        if acting_id is None:
            raise ValidationError("Unable to identify the staff member. Please sign in again.")

        result = await self.api.change_pin(old_pin=current_pin, new_pin=new_pin, user_id=acting_id)
        if not result.get("success"):
            logger.info("PIN rotation rejected account_id=%s", acting_id)
            if result.get("locked"):
                raise Locked(result.get("error"))
            raise InvalidPin(result.get("error"))

        profile = self.session.profile
        if profile is not None:
            profile.must_change_pin = False
            profile.pin_expired = False
            profile.pin_changed_at = result.get("pin_changed_at")

        if self.delay_seconds > 0:
            await self._sleep(self.delay_seconds)
        return landing_route_for(profile.role if profile is not None else None)


def validate_password_change(current_password: str, new_password: str, confirm_password: str) -> None:
    if not current_password:
        raise ValidationError("Current password is required")
    if len(new_password or "") < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"New password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if new_password != confirm_password:
        raise ValidationError("Passwords do not match")
    if new_password == current_password:
        raise ValidationError("New password must be different from the current password")


async def change_password(
    api: PulseApiClient,
    session: SessionContext,
    *,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> str:
    """Complete a forced (or voluntary) password change; returns the landing route."""
    validate_password_change(current_password, new_password, confirm_password)
    try:
        result = await api.change_password(current_password=current_password, new_password=new_password)
    except TransportError as exc:
        if exc.status_code == 400:
            raise ValidationError(exc.message) from exc
        raise

    profile = session.profile
    if profile is not None:
        profile.must_change_password = False
    return result.get("redirect_to") or landing_route_for(profile.role if profile is not None else None)
