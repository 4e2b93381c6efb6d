import asyncio

import pytest

from pulse.console.errors import TransportError
from pulse.console.keypad import KeypadState, PinKeypad, ROTATION_MIN_LENGTH
from pulse.console.verification import VerifyOutcome


class _RecordingVerifier:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def __call__(self, pin):
        self.calls.append(pin)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


async def _type(keypad, digits):
    result = None
    for digit in digits:
        result = await keypad.press_digit(digit)
    return result


def test_auto_submits_exactly_once_at_six_digits():
    verifier = _RecordingVerifier(VerifyOutcome(success=True, redirect_to="/delivery"))
    keypad = PinKeypad(verifier)

    async def scenario():
        partial = await _type(keypad, "48291")
        assert partial is None
        assert verifier.calls == []
        return await keypad.press_digit("3")

    outcome = asyncio.run(scenario())

    assert verifier.calls == ["482913"]
    assert outcome.success is True
    assert keypad.state == KeypadState.ACCEPTED


def test_buffer_never_exceeds_six_digits():
    keypad = PinKeypad(_RecordingVerifier(), auto_submit=False)

    asyncio.run(_type(keypad, "1234567890"))

    assert keypad.length == 6
    assert keypad.masked == "••••••"


def test_masking_pads_with_placeholders():
    keypad = PinKeypad(_RecordingVerifier())

    asyncio.run(_type(keypad, "12"))

    assert keypad.masked == "••○○○○"
    assert "1" not in keypad.masked


def test_digits_ignored_until_link_resolves():
    keypad = PinKeypad(_RecordingVerifier(), resolved=False)

    asyncio.run(_type(keypad, "123"))
    assert keypad.length == 0

    keypad.mark_resolved()
    asyncio.run(_type(keypad, "123"))
    assert keypad.length == 3


def test_backspace_and_clear():
    keypad = PinKeypad(_RecordingVerifier())
    asyncio.run(_type(keypad, "12"))

    keypad.backspace()
    keypad.backspace()
    keypad.backspace()

    assert keypad.length == 0
    assert keypad.state == KeypadState.EMPTY

    asyncio.run(_type(keypad, "9"))
    keypad.clear()
    assert keypad.state == KeypadState.EMPTY


def test_manual_submission_floor_is_per_entry_point():
    login_verifier = _RecordingVerifier(VerifyOutcome(success=True))
    login = PinKeypad(login_verifier)
    rotation = PinKeypad(_RecordingVerifier(), min_length=ROTATION_MIN_LENGTH, auto_submit=False)

    async def scenario():
        await _type(login, "123")
        assert await login.submit() is None
        await login.press_digit("4")
        assert (await login.submit()).success is True

        await _type(rotation, "12345")
        assert rotation.can_submit is False

    asyncio.run(scenario())

    assert login_verifier.calls == ["1234"]


def test_rejection_clears_buffer_and_rearms():
    verifier = _RecordingVerifier(
        VerifyOutcome(success=False, attempts_remaining=2, error="Invalid PIN. Try again."),
        VerifyOutcome(success=True),
    )
    keypad = PinKeypad(verifier)

    asyncio.run(_type(keypad, "000000"))

    assert keypad.state == KeypadState.REJECTED
    assert keypad.length == 0
    assert keypad.error == "Invalid PIN. Try again."
    assert keypad.attempts_remaining == 2

    asyncio.run(_type(keypad, "482913"))
    assert keypad.state == KeypadState.ACCEPTED


def test_clear_removes_displayed_error():
    keypad = PinKeypad(_RecordingVerifier(VerifyOutcome(success=False, error="Invalid PIN. Try again.")))
    asyncio.run(_type(keypad, "000000"))

    keypad.clear()

    assert keypad.error is None
    assert keypad.attempts_remaining is None


def test_locked_disables_all_input_until_reset():
    keypad = PinKeypad(_RecordingVerifier(VerifyOutcome(success=False, locked=True, error="PIN locked.")))
    asyncio.run(_type(keypad, "000000"))

    asyncio.run(_type(keypad, "12"))
    keypad.clear()
    keypad.backspace()

    assert keypad.state == KeypadState.LOCKED
    assert keypad.length == 0
    assert keypad.error == "PIN locked."

    keypad.reset()
    asyncio.run(_type(keypad, "1"))
    assert keypad.length == 1


def test_second_submission_blocked_while_in_flight():
    release = None
    calls = []

    async def slow_verifier(pin):
        calls.append(pin)
        await release.wait()
        return VerifyOutcome(success=True)

    keypad = PinKeypad(slow_verifier)

    async def scenario():
        nonlocal release
        release = asyncio.Event()
        await _type(keypad, "12345")
        first = asyncio.create_task(keypad.press_digit("6"))
        await asyncio.sleep(0)
        assert keypad.state == KeypadState.SUBMITTING
        assert await keypad.submit() is None
        assert await keypad.press_digit("7") is None
        release.set()
        return await first

    outcome = asyncio.run(scenario())

    assert calls == ["123456"]
    assert outcome.success is True


def test_response_after_abandon_is_discarded():
    release = None

    async def slow_verifier(pin):
        await release.wait()
        return VerifyOutcome(success=False, error="Invalid PIN. Try again.")

    keypad = PinKeypad(slow_verifier)

    async def scenario():
        nonlocal release
        release = asyncio.Event()
        await _type(keypad, "12345")
        pending = asyncio.create_task(keypad.press_digit("6"))
        await asyncio.sleep(0)
        keypad.abandon()
        release.set()
        return await pending

    assert asyncio.run(scenario()) is None
    assert keypad.state == KeypadState.EMPTY
    assert keypad.error is None


def test_transport_failure_rejects_with_generic_reason():
    keypad = PinKeypad(_RecordingVerifier(TransportError()))

    with pytest.raises(TransportError):
        asyncio.run(_type(keypad, "123456"))

    assert keypad.state == KeypadState.REJECTED
    assert keypad.length == 0
    assert keypad.error == TransportError.default_message


def test_non_digit_keys_are_refused():
    keypad = PinKeypad(_RecordingVerifier())

    with pytest.raises(ValueError):
        asyncio.run(keypad.press_digit("a"))


def test_accepted_keypad_ignores_further_input_until_reset():
    verifier = _RecordingVerifier(
        VerifyOutcome(success=True, redirect_to="/delivery"),
        VerifyOutcome(success=True, redirect_to="/delivery"),
    )
    keypad = PinKeypad(verifier)

    asyncio.run(_type(keypad, "482913"))
    follow_up = asyncio.run(_type(keypad, "111111"))
    keypad.clear()
    manual = asyncio.run(keypad.submit())

    assert follow_up is None
    assert manual is None
    assert verifier.calls == ["482913"]
    assert keypad.state == KeypadState.ACCEPTED
    assert keypad.length == 0

    keypad.reset()
    asyncio.run(_type(keypad, "482913"))

    assert verifier.calls == ["482913", "482913"]
