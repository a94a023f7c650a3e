"""Opaque document identifiers."""
from __future__ import annotations

import re
import secrets
import time

_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def new_id() -> str:
    """Return a fresh identifier: creation seconds followed by random bytes."""
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


def is_valid_id(value: object) -> bool:
    """Return True when ``value`` is a well-formed identifier string."""
    return isinstance(value, str) and _ID_PATTERN.match(value) is not None
