"""URL path encoding for saved search names."""

from __future__ import annotations

_UNRESERVED = frozenset(b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~")


def url_encode(value: str) -> str:
    """Percent-encode every UTF-8 byte outside ``[A-Za-z0-9._~-]`` with lowercase hex."""
    parts = []
    for byte in value.encode("utf-8"):
        if byte in _UNRESERVED:
            parts.append(chr(byte))
        else:
            parts.append(f"%{byte:02x}")
    return "".join(parts)
