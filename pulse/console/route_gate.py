from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pulse.console.routes import (
    CHANGE_PASSWORD_ROUTE,
    CHANGE_PIN_ROUTE,
    LOGIN_ROUTE,
    ROUTE_TABLE,
    UNAUTHORIZED_ROUTE,
    allowed_roles_for,
    normalize_path,
)
from pulse.console.session import SessionContext

MUST_CHANGE_PIN_MESSAGE = "You need to change your PIN before continuing."
PIN_EXPIRED_REDIRECT_MESSAGE = "Your PIN has expired. Please change it now."
MUST_CHANGE_PASSWORD_MESSAGE = "You need to change your password before continuing."


class GateKind(str, Enum):
    ALLOW = "allow"
    WAIT = "wait"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    kind: GateKind
    target: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(GateKind.ALLOW)

    @classmethod
    def wait(cls) -> "GateDecision":
        return cls(GateKind.WAIT)

    @classmethod
    def redirect(cls, target: str, message: Optional[str] = None) -> "GateDecision":
        return cls(GateKind.REDIRECT, target, message)


class RouteGate:
    def __init__(self, session: SessionContext, table: Optional[Dict[str, FrozenSet[str]]] = None):
        self.session = session
        self.table = ROUTE_TABLE if table is None else table

    def evaluate(self, path: str) -> GateDecision:
        session = self.session
        if session.loading:
            return GateDecision.wait()

        profile = session.profile
        if not session.is_authenticated or profile is None:
            return GateDecision.redirect(LOGIN_ROUTE)

        path = normalize_path(path)
        if profile.must_change_password:
            if path != CHANGE_PASSWORD_ROUTE:
                return GateDecision.redirect(CHANGE_PASSWORD_ROUTE, MUST_CHANGE_PASSWORD_MESSAGE)
        elif profile.must_rotate_pin and path != CHANGE_PIN_ROUTE:
            message = PIN_EXPIRED_REDIRECT_MESSAGE if profile.pin_expired else MUST_CHANGE_PIN_MESSAGE
            return GateDecision.redirect(CHANGE_PIN_ROUTE, message)

        allowed = allowed_roles_for(path, self.table)
        if allowed is not None and profile.role not in allowed:
            return GateDecision.redirect(UNAUTHORIZED_ROUTE)
        return GateDecision.allow()
