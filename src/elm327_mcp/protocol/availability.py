"""Supported-PID bitmask decoding.

A support query (``01 00``, ``01 20``, ...) answers with 4 bytes per block of
32 PIDs. Bit 7 of byte ``k`` flags PID ``8k+1``, bit 0 flags PID ``8k+8``,
both counted from the PID the query was issued for.
"""

from __future__ import annotations

import re

from .errors import InvalidArgument

_HEX_DIGITS = re.compile(r"[0-9A-F]*")


def digest(availability: str) -> bytes:
    """Turn a support-query hex string into bitmask bytes.

    Raises:
        InvalidArgument: If the length is not a multiple of 8 or a
            character is not an uppercase hex digit.
    """
    if len(availability) % 8 != 0:
        raise InvalidArgument(
            f"Invalid length for availability string: {availability!r}"
        )
    if not _HEX_DIGITS.fullmatch(availability):
        raise InvalidArgument(
            f"Invalid character in availability string: {availability!r}"
        )
    return bytes.fromhex(availability)


def _offset(parameter_id: str | int, base: int) -> int:
    if isinstance(parameter_id, int):
        number = parameter_id
    else:
        try:
            number = int(parameter_id, 16)
        except ValueError:
            raise InvalidArgument(f"PID must be hex, got {parameter_id!r}") from None
    return number - base


def is_available(
    parameter_id: str | int,
    availability: bytes | str,
    base: int = 0,
) -> bool:
    """Check whether a PID is flagged in a support bitmask.

    Args:
        parameter_id: PID as a hex string (``"0C"``) or an int.
        availability: Digested bitmask bytes, or the raw hex string.
        base: PID of the support query that produced the bitmask.

    Raises:
        InvalidArgument: If the PID is not covered by the bitmask.
    """
    if isinstance(availability, str):
        availability = digest(availability)

    offset = _offset(parameter_id, base)
    if not 1 <= offset <= len(availability) * 8:
        raise InvalidArgument(
            f"PID {parameter_id!r} is outside the bitmask starting at {base:#04x}"
        )

    index, position = divmod(offset - 1, 8)
    mask = 0x80 >> position
    return availability[index] & mask == mask


def supported_pids(availability: bytes | str, base: int = 0) -> list[int]:
    """List every PID flagged in the bitmask, as absolute numbers."""
    if isinstance(availability, str):
        availability = digest(availability)
    return [
        base + offset
        for offset in range(1, len(availability) * 8 + 1)
        if is_available(base + offset, availability, base)
    ]
