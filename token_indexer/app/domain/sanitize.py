from __future__ import annotations

import re
from typing import Any

# Misbehaving contracts answer name()/symbol() with values like "0006648936.1ec7"
_MALFORMED_RESULT_RE = re.compile(r"^\d{10}\.[\d|\w]{4}$")


def clear_null_bytes(value: str | None) -> str | None:
    # PostgreSQL rejects 0x00 in text columns
    if value is None:
        return None
    return value.replace("\x00", "")


def sanitize_call_result(val: Any) -> str | None:
    """
    Normalize a string-ish contract call result before it is persisted.

    - bytes / bytes32 are decoded as UTF-8,
    - NUL bytes are removed,
    - the known malformed "dddddddddd.xxxx" answer becomes None,
    - empty results become None.
    """
    if val is None:
        return None

    if isinstance(val, (bytes, bytearray, memoryview)):
        try:
            val = bytes(val).rstrip(b"\x00").decode("utf-8")
        except UnicodeDecodeError:
            return None

    if not isinstance(val, str):
        return None

    cleaned = clear_null_bytes(val) or ""
    if not cleaned or _MALFORMED_RESULT_RE.match(cleaned):
        return None
    return cleaned


def sanitize_uri(val: Any) -> str | None:
    if not isinstance(val, str):
        return None
    return clear_null_bytes(val) or None
