"""
Stable 32-bit FNV-1a hashing for event IDs and calendar UIDs.

The hash runs over UTF-16 code units so IDs stay identical to the ones
already handed out by the web frontend.
"""

from __future__ import annotations

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193


def fnv1a_hex(value: str) -> str:
    h = FNV_OFFSET_BASIS
    data = value.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return format(h, "x")


def stable_event_id(seed: str) -> str:
    return f"e{fnv1a_hex(seed)}"
