import asyncio

import pytest

from pulse.console.errors import TenantNotFound
from pulse.console.pin_login import PinLoginController
from pulse.console.resolver import LinkTarget, StaffDescriptor, parse_link
from pulse.console.verification import VerifyOutcome


@pytest.mark.parametrize(
    "link,expected",
    [
        ("/ACME/JD01", ("ACME", "JD01")),
        ("acme/jd01/", ("acme", "jd01")),
        ("/staff/12", ("12", None)),
        ("/STAFF/12", ("12", None)),
        ("/staff/JD01", ("staff", "JD01")),
        ("/ACME", ("ACME", None)),
        ("https://console.example.com/ACME/JD01?ref=sms", ("ACME", "JD01")),
    ],
)
def test_parse_link_forms(link, expected):
    assert parse_link(link) == expected


@pytest.mark.parametrize("link", ["", "/", "/a/b/c"])
def test_malformed_links_are_unresolvable(link):
    with pytest.raises(TenantNotFound):
        parse_link(link)


def test_greeting_uses_staff_name():
    target = LinkTarget(tenant_id=1, business_name="Acme", staff=StaffDescriptor(2, "Jane Doe", "JD01"))

    assert target.greeting == "Hello, Jane Doe"
    assert LinkTarget(tenant_id=1, business_name="Acme").greeting is None


class _SlowResolver:
    def __init__(self, targets, delays):
        self.targets = targets
        self.delays = delays

    async def resolve(self, path):
        await asyncio.sleep(self.delays[path])
        result = self.targets[path]
        if isinstance(result, Exception):
            raise result
        return result


class _RecordingVerification:
    def __init__(self):
        self.calls = []

    async def verify(self, pin, tenant_id, staff_id=None):
        self.calls.append((pin, tenant_id, staff_id))
        return VerifyOutcome(success=False, error="Invalid PIN. Try again.", attempts_remaining=4)


def _controller(targets, delays):
    controller = PinLoginController(api=None, session=None)
    controller.resolver = _SlowResolver(targets, delays)
    controller.verification = _RecordingVerification()
    return controller


def test_latest_link_wins_when_earlier_resolution_is_slower():
    old = LinkTarget(tenant_id=1, business_name="Old Co", staff=StaffDescriptor(1, "Old Staff", "X"))
    new = LinkTarget(tenant_id=2, business_name="New Co", staff=StaffDescriptor(2, "New Staff", "Y"))
    controller = _controller({"/OLD/X": old, "/NEW/Y": new}, {"/OLD/X": 0.05, "/NEW/Y": 0})

    async def scenario():
        results = await asyncio.gather(controller.open("/OLD/X"), controller.open("/NEW/Y"))
        for digit in "000000":
            await controller.press(digit)
        return results

    stale, latest = asyncio.run(scenario())

    assert stale is None
    assert latest == new
    assert controller.target == new
    assert controller.greeting == "Hello, New Staff"
    assert controller.verification.calls == [("000000", 2, 2)]


def test_stale_resolution_failure_does_not_disarm_latest_link():
    new = LinkTarget(tenant_id=2, business_name="New Co", staff=StaffDescriptor(2, "New Staff", "Y"))
    controller = _controller(
        {"/GONE/X": TenantNotFound(), "/NEW/Y": new},
        {"/GONE/X": 0.05, "/NEW/Y": 0},
    )

    async def scenario():
        return await asyncio.gather(controller.open("/GONE/X"), controller.open("/NEW/Y"))

    stale, latest = asyncio.run(scenario())

    assert stale is None
    assert latest == new
    assert controller.keypad.resolved is True
