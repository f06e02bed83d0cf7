"""Module: avatar."""

import struct

AVATAR_PALETTE = (
    "#E57373", "#F06292", "#BA68C8", "#9575CD",
    "#7986CB", "#64B5F6", "#4FC3F7", "#4DD0E1",
    "#4DB6AC", "#81C784", "#AED581", "#FFD54F",
    "#FFB74D", "#FF8A65", "#A1887F", "#90A4AE",
)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _utf16_units(value: str) -> tuple[int, ...]:
    data = value.encode("utf-16-le")
    return struct.unpack(f"<{len(data) // 2}H", data)


def _string_hash(value: str) -> int:
    """
    Same value as the browser's ``hash = c + ((hash << 5) - hash)`` loop.

    Only the shift operand is truncated to 32 bits; the running value is not.
    """
    h = 0
    for unit in _utf16_units(value):
        h = unit + _to_int32(_to_int32(h) << 5) - h
    return h


def avatar_color(name: str | None) -> str:
    """Deterministic background colour: the same name always gets the same colour."""
    return AVATAR_PALETTE[abs(_string_hash(name or "")) % len(AVATAR_PALETTE)]


def initials(first_name: str | None = None, last_name: str | None = None, email: str | None = None) -> str:
    first = (first_name or "").strip()
    last = (last_name or "").strip()
    if first and last:
        return (first[0] + last[0]).upper()
    if first:
        parts = first.split()
        if len(parts) >= 2:
            return (parts[0][0] + parts[-1][0]).upper()
        return first[0].upper()
    if email:
        return email[0].upper()
    return "?"
