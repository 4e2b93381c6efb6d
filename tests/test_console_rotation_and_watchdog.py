import asyncio
from datetime import datetime

import pytest
from dateutil.relativedelta import relativedelta

from pulse.console.errors import InvalidPin, Locked, TransportError, ValidationError
from pulse.console.route_gate import GateKind
from pulse.console.rotation import PinRotationWorkflow, validate_password_change, validate_rotation
from pulse.console.session import Profile, SessionContext
from pulse.console.watchdog import ExpiryWatchdog

NOW = datetime(2026, 10, 1, 8, 0, 0)


class _FakeApi:
    def __init__(self, change_result=None, record=None, error=None):
        self.access_token = "token"
        self.change_result = change_result or {"success": True, "pin_changed_at": "2026-10-01T08:00:00"}
        self.record = record
        self.error = error
        self.change_calls = []
        self.profile_calls = []

    async def change_pin(self, *, old_pin, new_pin, user_id=None):
        self.change_calls.append((old_pin, new_pin, user_id))
        return self.change_result

    async def get_profile(self, account_id=None):
        self.profile_calls.append(account_id)
        if self.error is not None:
            raise self.error
        return self.record


def _context(api, role="delivery", **flags):
    context = SessionContext(api)
    context.tokens = {"access_token": "token", "user": {"id": 2, "tenant_id": 1, "role": role}}
    context.profile = Profile(id=2, tenant_id=1, role=role, full_name="Jane Doe", **flags)
    return context


@pytest.mark.parametrize(
    "current,new,confirm,message",
    [
        ("12345", "222222", "222222", "Current PIN must be 6 digits"),
        ("111111", "2222a2", "2222a2", "New PIN must be 6 digits"),
        ("111111", "222222", "222223", "New PIN and confirm PIN must match"),
        ("111111", "111111", "111111", "New PIN must be different from current PIN"),
        ("abc", "1", "2", "Current PIN must be 6 digits"),
    ],
)
def test_validation_order(current, new, confirm, message):
    with pytest.raises(ValidationError) as exc:
        validate_rotation(current, new, confirm)

    assert exc.value.message == message


def test_validation_failures_never_reach_the_service():
    api = _FakeApi()
    workflow = PinRotationWorkflow(api, _context(api), delay_seconds=0)

    with pytest.raises(ValidationError):
        asyncio.run(workflow.submit("111111", "222222", "333333"))

    assert api.change_calls == []


def test_rotation_success_clears_flags_and_lands_after_delay():
    api = _FakeApi()
    context = _context(api, must_change_pin=True, pin_expired=True)
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    workflow = PinRotationWorkflow(api, context, delay_seconds=2, sleep=fake_sleep)

    landing = asyncio.run(workflow.submit("111111", "222222", "222222"))

    assert landing == "/delivery"
    assert slept == [2]
    assert api.change_calls == [("111111", "222222", 2)]
    assert context.profile.must_change_pin is False
    assert context.profile.pin_expired is False
    assert context.profile.pin_changed_at == "2026-10-01T08:00:00"


def test_explicit_user_id_wins_over_cached_identity():
    api = _FakeApi()
    workflow = PinRotationWorkflow(api, _context(api), delay_seconds=0)

    asyncio.run(workflow.submit("111111", "222222", "222222", user_id=9))

    assert api.change_calls[0][2] == 9


def test_service_reason_is_surfaced_verbatim():
    api = _FakeApi(change_result={"success": False, "error": "Current PIN is incorrect"})
    workflow = PinRotationWorkflow(api, _context(api), delay_seconds=0)

    with pytest.raises(InvalidPin) as exc:
        asyncio.run(workflow.submit("111111", "222222", "222222"))

    assert exc.value.message == "Current PIN is incorrect"


def test_locked_rotation_raises_locked():
    api = _FakeApi(change_result={"success": False, "locked": True, "error": "PIN locked."})
    workflow = PinRotationWorkflow(api, _context(api), delay_seconds=0)

    with pytest.raises(Locked):
        asyncio.run(workflow.submit("111111", "222222", "222222"))


def _record(months_ago=None, set_months_ago=None):
    return {
        "id": 2,
        "pin_changed_at": (NOW - relativedelta(months=months_ago)).isoformat() if months_ago is not None else None,
        "pin_set_at": (NOW - relativedelta(months=set_months_ago)).isoformat() if set_months_ago is not None else None,
        "created_at": (NOW - relativedelta(months=12)).isoformat(),
    }


def test_watchdog_redirects_after_four_months():
    api = _FakeApi(record=_record(months_ago=4))
    context = _context(api)

    decision = asyncio.run(ExpiryWatchdog(clock=lambda: NOW).check(context))

    assert decision.kind == GateKind.REDIRECT
    assert decision.target == "/change-pin"
    assert decision.message == "Your PIN has expired."
    assert context.profile.pin_expired is True


def test_watchdog_leaves_recent_pins_alone():
    api = _FakeApi(record=_record(months_ago=2))

    assert asyncio.run(ExpiryWatchdog(clock=lambda: NOW).check(_context(api))) is None


def test_watchdog_falls_back_to_provisioning_time():
    api = _FakeApi(record=_record(set_months_ago=5))

    decision = asyncio.run(ExpiryWatchdog(clock=lambda: NOW).check(_context(api)))

    assert decision.target == "/change-pin"


def test_watchdog_only_watches_delivery_sessions():
    api = _FakeApi(record=_record(months_ago=8))

    assert asyncio.run(ExpiryWatchdog(clock=lambda: NOW).check(_context(api, role="manager"))) is None
    assert api.profile_calls == []


def test_watchdog_ignores_transport_failures():
    api = _FakeApi(error=TransportError())

    assert asyncio.run(ExpiryWatchdog(clock=lambda: NOW).check(_context(api))) is None


@pytest.mark.parametrize(
    "current,new,confirm,message",
    [
        ("", "long enough", "long enough", "Current password is required"),
        ("old secret", "short", "short", "New password must be at least 8 characters long"),
        ("old secret", "long enough", "long enouhg", "Passwords do not match"),
        ("old secret", "old secret", "old secret", "New password must be different from the current password"),
    ],
)
def test_password_change_form_checks_in_order(current, new, confirm, message):
    with pytest.raises(ValidationError) as exc_info:
        validate_password_change(current, new, confirm)

    assert exc_info.value.message == message
