from __future__ import annotations

import re

from certproof.core.errors import InvalidArgument

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
ZERO_ADDRESS = "0x" + "0" * 40


def is_address(value: object) -> bool:
    return isinstance(value, str) and ADDRESS_RE.match(value) is not None


def require_address(value: object, *, field: str = "address") -> str:
    """Return *value* unchanged if it is a 0x-prefixed 40 hex digit string."""
    if not is_address(value):
        raise InvalidArgument(f"{field} must be a 0x-prefixed 40 hex digit address")
    return value  # type: ignore[return-value]


def require_token_id(value: object, *, field: str = "tokenId") -> int:
    # bool is an int subclass; True must not pass as token 1.
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidArgument(f"{field} must be a positive integer")
    return value


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()
