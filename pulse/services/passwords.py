from __future__ import annotations

import re

from passlib.context import CryptContext

# PINs and owner passwords share one context; PINs are short so the hash cost
# is what slows down offline guessing, the attempt counter covers online guessing.
_secret_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

_PIN_PATTERN = re.compile(r"^\d{6}$")


def hash_password(password: str) -> str:
    return _secret_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _secret_context.verify(password, password_hash)
    except ValueError:
        return False


def hash_pin(pin: str) -> str:
    return _secret_context.hash(pin)


def verify_pin(pin: str, pin_hash: str | None) -> bool:
    return verify_password(pin, pin_hash)


def is_six_digit_pin(value: str | None) -> bool:
    return bool(value) and bool(_PIN_PATTERN.fullmatch(value))
