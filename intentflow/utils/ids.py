"""Identifier helpers."""

from __future__ import annotations

import random
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def timestamp_base36() -> str:
    """Current time in milliseconds, base36 encoded."""
    return to_base36(int(time.time() * 1000))


def random_suffix(length: int = 6) -> str:
    return "".join(random.choices(_ALPHABET, k=length))


def generate_execution_id() -> str:
    """Return an id of the form ``exec-<base36 ms>-<6 random chars>``."""
    return f"exec-{timestamp_base36()}-{random_suffix()}"
