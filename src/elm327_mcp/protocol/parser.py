"""Per-PID payload decoders.

Each decoder turns the bytes of one reply into a value. A reply payload
starts with a two-byte header (``mode + 0x40``, PID) followed by the data
bytes ``A``, ``B``, ... the OBD-II formulas refer to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from ..models.exchange import ExchangeResult
from .availability import is_available, supported_pids
from .commands import PIDS_PER_BLOCK, Mode, supported_pids_frame
from .errors import InvalidArgument

logger = logging.getLogger(__name__)

HEADER_SIZE = 2


class PayloadDecoder(Protocol):
    """Calculation step for one PID."""

    name: str

    def unit(self, imperial: bool) -> str: ...

    def decode(self, payload: bytes, imperial: bool) -> Any: ...


def data_bytes(payload: bytes, count: int) -> bytes:
    """Return the ``count`` data bytes following the response header."""
    data = payload[HEADER_SIZE : HEADER_SIZE + count]
    if len(data) < count:
        raise InvalidArgument(
            f"Expected {count} data byte(s) after header, got {payload.hex(' ').upper()!r}"
        )
    return data


def format_value(decoder: PayloadDecoder, payload: bytes, imperial: bool) -> str:
    """Render a decoded value followed by its unit."""
    value = decoder.decode(payload, imperial)
    unit = decoder.unit(imperial)
    return f"{value}{unit}" if unit else str(value)


@dataclass(frozen=True)
class AvailablePidsDecoder:
    """Support-query reply (PID 00, 20, 40, ...): list of supported PIDs."""

    base: int = 0x00
    name: str = "Available PIDs"

    def unit(self, imperial: bool) -> str:
        return ""

    def decode(self, payload: bytes, imperial: bool) -> list[int]:
        return supported_pids(data_bytes(payload, 4), self.base)


@dataclass(frozen=True)
class EngineRpmDecoder:
    name: str = "Engine RPM"

    def unit(self, imperial: bool) -> str:
        return "RPM"

    def decode(self, payload: bytes, imperial: bool) -> int:
        a, b = data_bytes(payload, 2)
        return (a * 256 + b) // 4


@dataclass(frozen=True)
class VehicleSpeedDecoder:
    name: str = "Vehicle Speed"

    def unit(self, imperial: bool) -> str:
        return "mph" if imperial else "km/h"

    def decode(self, payload: bytes, imperial: bool) -> float:
        (kmh,) = data_bytes(payload, 1)
        if imperial:
            return round(kmh * 0.621371, 1)
        return float(kmh)


@dataclass(frozen=True)
class CoolantTemperatureDecoder:
    name: str = "Engine Coolant Temperature"

    def unit(self, imperial: bool) -> str:
        return "F" if imperial else "C"

    def decode(self, payload: bytes, imperial: bool) -> float:
        (a,) = data_bytes(payload, 1)
        celsius = a - 40
        if imperial:
            return round(celsius * 1.8 + 32, 1)
        return float(celsius)


@dataclass(frozen=True)
class EngineLoadDecoder:
    name: str = "Engine Load"

    def unit(self, imperial: bool) -> str:
        return "%"

    def decode(self, payload: bytes, imperial: bool) -> float:
        (a,) = data_bytes(payload, 1)
        return round(a * 100 / 255, 1)


DECODERS: dict[tuple[Mode, int], PayloadDecoder] = {
    (Mode.CURRENT_DATA, 0x04): EngineLoadDecoder(),
    (Mode.CURRENT_DATA, 0x05): CoolantTemperatureDecoder(),
    (Mode.CURRENT_DATA, 0x0C): EngineRpmDecoder(),
    (Mode.CURRENT_DATA, 0x0D): VehicleSpeedDecoder(),
}
for _block in range(8):
    DECODERS[(Mode.CURRENT_DATA, _block * PIDS_PER_BLOCK)] = AvailablePidsDecoder(
        base=_block * PIDS_PER_BLOCK
    )


def get_decoder(mode: Mode | None, parameter_id: str | None) -> PayloadDecoder | None:
    """Look up the decoder for a mode/PID pair."""
    if mode is None or not parameter_id:
        return None
    try:
        pid = int(parameter_id, 16)
    except ValueError:
        return None
    return DECODERS.get((mode, pid))


def decode_result(result: ExchangeResult) -> dict[str, Any]:
    """Apply the matching decoder to an exchange result.

    Falls back to the raw payload when no decoder is registered.
    """
    frame = result.frame
    decoder = get_decoder(frame.mode, frame.parameter_id)
    decoded = result.to_dict()
    if decoder is None:
        return decoded

    imperial = result.imperial_units
    decoded.update({
        "name": decoder.name,
        "value": decoder.decode(result.payload, imperial),
        "unit": decoder.unit(imperial),
        "formatted": format_value(decoder, result.payload, imperial),
    })
    return decoded


def query_supported_pids(session, mode: Mode = Mode.CURRENT_DATA) -> list[int]:
    """Collect every supported PID by walking the support blocks.

    The last PID of each block (0x20, 0x40, ...) flags whether the next
    block exists; the walk stops at the first block where it is clear.
    """
    found: list[int] = []
    for block in range(8):
        base = block * PIDS_PER_BLOCK
        result = session.execute(supported_pids_frame(mode, block))
        bitmask = data_bytes(result.payload, 4)
        found.extend(supported_pids(bitmask, base))
        if not is_available(base + PIDS_PER_BLOCK, bitmask, base):
            break
    logger.debug("Mode %s supports %d PIDs", mode.code, len(found))
    return found
