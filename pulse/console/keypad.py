from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from pulse.console.errors import ConsoleError, Locked
from pulse.console.verification import VerifyOutcome

logger = logging.getLogger(__name__)

PIN_LENGTH = 6
LOGIN_MIN_LENGTH = 4
ROTATION_MIN_LENGTH = 6
MASK_GLYPH = "•"
PLACEHOLDER_GLYPH = "○"

SubmitFn = Callable[[str], Awaitable[VerifyOutcome]]


class KeypadState(str, Enum):
    EMPTY = "empty"
    ENTERING = "entering"
    SUBMITTING = "submitting"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    LOCKED = "locked"


class PinKeypad:
    """Digit collector for one PIN screen.

    Submission is automatic once six digits are in and the login link has
    resolved; a manual ``submit()`` is allowed from ``min_length`` digits.
    Login screens use a floor of 4, rotation screens a floor of 6.
    """

    def __init__(
        self,
        submit: SubmitFn,
        *,
        min_length: int = LOGIN_MIN_LENGTH,
        resolved: bool = True,
        auto_submit: bool = True,
    ):
        if not 1 <= min_length <= PIN_LENGTH:
            raise ValueError("min_length must be between 1 and 6")
        self._submit_fn = submit
        self.min_length = min_length
        self.auto_submit = auto_submit
        self.resolved = resolved
        self.state = KeypadState.EMPTY
        self.error: Optional[str] = None
        self.attempts_remaining: Optional[int] = None
        self.outcome: Optional[VerifyOutcome] = None
        self._digits: list[str] = []
        # Bumped by abandon()/reset(); a response from an older epoch is dropped.
        self._epoch = 0

    @property
    def length(self) -> int:
        return len(self._digits)

    @property
    def masked(self) -> str:
        return MASK_GLYPH * self.length + PLACEHOLDER_GLYPH * (PIN_LENGTH - self.length)

    @property
    def accepts_input(self) -> bool:
        return self.resolved and self.state not in (
            KeypadState.SUBMITTING,
            KeypadState.ACCEPTED,
            KeypadState.LOCKED,
        )

    @property
    def can_submit(self) -> bool:
        return self.accepts_input and self.length >= self.min_length

    def mark_resolved(self) -> None:
        self.resolved = True

    async def press_digit(self, digit: str) -> Optional[VerifyOutcome]:
        if not (isinstance(digit, str) and len(digit) == 1 and digit.isdigit()):
            raise ValueError("Keypad accepts single digits only")
        if not self.accepts_input or self.length >= PIN_LENGTH:
            return None
        self._digits.append(digit)
        self.state = KeypadState.ENTERING
        if self.auto_submit and self.length == PIN_LENGTH:
            return await self.submit()
        return None

    def clear(self) -> None:
        if self.state in (KeypadState.SUBMITTING, KeypadState.ACCEPTED, KeypadState.LOCKED):
            return
        self._digits.clear()
        self.state = KeypadState.EMPTY
        self.error = None
        self.attempts_remaining = None

    def backspace(self) -> None:
        if not self.accepts_input or not self._digits:
            return
        self._digits.pop()
        self.state = KeypadState.ENTERING if self._digits else KeypadState.EMPTY

    async def submit(self) -> Optional[VerifyOutcome]:
        """Send the buffer for verification; returns None when the call was ignored or went stale."""
        if not self.can_submit:
            return None

        pin = "".join(self._digits)
        epoch = self._epoch
        self.state = KeypadState.SUBMITTING
        try:
            outcome = await self._submit_fn(pin)
        except ConsoleError as exc:
            if epoch != self._epoch:
                return None
            if isinstance(exc, Locked):
                self._lock(exc.message)
            else:
                self._reject(exc.message, getattr(exc, "attempts_remaining", None))
            raise

        if epoch != self._epoch:
            logger.info("Discarding stale verification response")
            return None

        self.outcome = outcome
        if outcome.success:
            self._digits.clear()
            self.state = KeypadState.ACCEPTED
            self.error = None
            self.attempts_remaining = None
        elif outcome.locked:
            self._lock(outcome.error or Locked.default_message)
        else:
            self._reject(outcome.error, outcome.attempts_remaining)
        return outcome

    def abandon(self) -> None:
        """The screen went away; drop the buffer and any response still in flight."""
        self._epoch += 1
        self._digits.clear()
        if self.state != KeypadState.LOCKED:
            self.state = KeypadState.EMPTY

    def reset(self) -> None:
        """External unlock (e.g. after an administrator reset the PIN)."""
        self._epoch += 1
        self._digits.clear()
        self.state = KeypadState.EMPTY
        self.error = None
        self.attempts_remaining = None
        self.outcome = None

    def _reject(self, message: Optional[str], attempts_remaining: Optional[int]) -> None:
        self._digits.clear()
        self.state = KeypadState.REJECTED
        self.error = message
        self.attempts_remaining = attempts_remaining

    def _lock(self, message: Optional[str]) -> None:
        self._digits.clear()
        self.state = KeypadState.LOCKED
        self.error = message
        self.attempts_remaining = None
