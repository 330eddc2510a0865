"""Identifier generation for stored images."""

import re
import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase
_TIME_WIDTH = 9  # base-36 milliseconds fit in 9 chars until the year 5188
_RANDOM_WIDTH = 10

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits))


def new_id() -> str:
    """Generate a new image ID.

    The ID is a zero-padded base-36 millisecond timestamp followed by random
    base-36 characters, so IDs sort roughly by creation time and IDs created in
    the same millisecond still differ.
    """
    timestamp = _to_base36(time.time_ns() // 1_000_000).rjust(_TIME_WIDTH, "0")
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_RANDOM_WIDTH))
    return timestamp + suffix


def is_valid_id(value: str) -> bool:
    """Check that a value only uses identifier characters."""
    return bool(_ID_PATTERN.match(value))
