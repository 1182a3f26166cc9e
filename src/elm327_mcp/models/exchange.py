"""Per-exchange result values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..protocol.commands import CommandFrame


@dataclass(frozen=True)
class ExchangeTiming:
    """Wall-clock timestamps (seconds since the epoch) for one exchange."""

    start: float
    end: float
    delay: float = 0.0

    @property
    def elapsed(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class ExchangeResult:
    """Everything one request/response exchange produced."""

    frame: CommandFrame
    payload: bytes
    response: str  # normalized hex text
    timing: ExchangeTiming
    imperial_units: bool = False

    def __repr__(self) -> str:
        return (
            f"ExchangeResult(command={self.frame.wire_text!r}, "
            f"payload={self.payload.hex(' ').upper() if self.payload else '(empty)'})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.frame.wire_text,
            "response": self.response,
            "payload": list(self.payload),
            "elapsed_ms": round(self.timing.elapsed * 1000, 1),
        }
