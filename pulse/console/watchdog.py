from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from pulse.console.errors import ConsoleError
from pulse.console.route_gate import GateDecision
from pulse.console.routes import CHANGE_PIN_ROUTE
from pulse.console.session import SessionContext
from pulse.core.config import PIN_STALENESS_MONTHS
from pulse.core.roles import ROLE_DELIVERY
from pulse.services.pin_policy import PIN_EXPIRED_MESSAGE, is_pin_stale, pin_reference_time, utcnow

logger = logging.getLogger(__name__)


class ExpiryWatchdog:
    """Screen-entry check that sends delivery staff with a stale PIN to rotation.

    Advisory: it never raises and never blocks what the screen already loaded.
    """

    def __init__(
        self,
        *,
        months: int = PIN_STALENESS_MONTHS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.months = months
        self._clock = clock

    async def check(self, session: SessionContext) -> Optional[GateDecision]:
        profile = session.profile
        if profile is None or profile.role != ROLE_DELIVERY:
            return None

        try:
            record = await session.api.get_profile(profile.id)
        except ConsoleError as exc:
            logger.warning("Expiry check skipped account_id=%s reason=%s", profile.id, exc.message)
            return None

        if not is_pin_stale(pin_reference_time(record), self._clock(), self.months):
            return None

        profile.pin_expired = True
        logger.info("PIN expired account_id=%s", profile.id)
        return GateDecision.redirect(CHANGE_PIN_ROUTE, PIN_EXPIRED_MESSAGE)
