from __future__ import annotations

from typing import Optional


class ConsoleError(Exception):
    """Base for every failure the console surfaces to the person at the keypad."""

    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class TenantNotFound(ConsoleError):
    default_message = "Business not found."


class StaffNotFound(ConsoleError):
    default_message = "Staff not found."


class InvalidPin(ConsoleError):
    default_message = "Invalid PIN. Try again."

    def __init__(self, message: Optional[str] = None, attempts_remaining: Optional[int] = None):
        super().__init__(message)
        self.attempts_remaining = attempts_remaining


class Locked(ConsoleError):
    default_message = "PIN locked. Please contact your manager to reset."


class ValidationError(ConsoleError):
    default_message = "Invalid input."


class TransportError(ConsoleError):
    default_message = "Could not reach the server. Please try again."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
