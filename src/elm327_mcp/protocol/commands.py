"""OBD-II request modes and command frames.

A request is a two-character mode code, optionally followed by a space and a
parameter id (PID), e.g. ``"01 0C"`` (current engine RPM) or ``"03"``
(stored trouble codes).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import InvalidArgument

PIDS_PER_BLOCK = 0x20


class Mode(Enum):
    """Request modes, with whether each one takes a PID."""

    CURRENT_DATA = ("01", True)
    FREEZE_FRAME = ("02", True)
    STORED_DIAGNOSTIC_CODES = ("03", False)
    CLEAR_DIAGNOSTIC_CODES = ("04", False)
    VEHICLE_INFORMATION = ("09", True)
    PERMANENT_DIAGNOSTIC_CODES = ("0A", False)

    def __init__(self, code: str, uses_parameter: bool) -> None:
        self.code = code
        self.uses_parameter = uses_parameter

    @classmethod
    def from_code(cls, code: str) -> Mode | None:
        for mode in cls:
            if mode.code == code:
                return mode
        return None


@dataclass(frozen=True)
class CommandFrame:
    """One outgoing request.

    ``mode`` is ``None`` for literal commands whose prefix is not a known
    mode (adapter ``AT`` commands, newer OBD modes); they can still be sent.
    """

    mode: Mode | None
    parameter_id: str | None
    text: str

    @property
    def mode_code(self) -> str:
        return self.mode.code if self.mode is not None else "unknown"

    @property
    def uses_parameter(self) -> bool:
        return self.mode is not None and self.mode.uses_parameter

    @property
    def wire_text(self) -> str:
        """The exact ASCII text transmitted, without the terminator."""
        return self.text

    def with_parameter(self, parameter_id: str) -> CommandFrame:
        """Build a frame in the same mode for another PID."""
        if self.mode is None:
            raise InvalidArgument(f"Command {self.text!r} has no known mode")
        return build_command(self.mode, parameter_id)

    def __repr__(self) -> str:
        return f"CommandFrame({self.text!r}, mode={self.mode_code})"


def build_command(mode: Mode | str, parameter_id: str | None = None) -> CommandFrame:
    """Build a frame for ``mode``, validating the PID requirement.

    Args:
        mode: A :class:`Mode` or its two-character code.
        parameter_id: PID in hex, required iff the mode uses one. Ignored
            for modes that take none.

    Raises:
        InvalidArgument: Unknown mode code, or missing required PID.
    """
    if not isinstance(mode, Mode):
        resolved = Mode.from_code(str(mode).upper())
        if resolved is None:
            raise InvalidArgument(f"Unknown mode code {mode!r}")
        mode = resolved

    if not mode.uses_parameter:
        return CommandFrame(mode=mode, parameter_id=None, text=mode.code)

    if not parameter_id:
        raise InvalidArgument(
            f"Mode {mode.code} requires a parameter id, none was given"
        )
    return CommandFrame(
        mode=mode,
        parameter_id=parameter_id,
        text=f"{mode.code} {parameter_id}",
    )


def parse_command(text: str) -> CommandFrame:
    """Wrap a literal command string, inferring its mode from the prefix.

    The text is sent exactly as given. Only commands in a PID-taking mode
    carry a parameter id; for anything else it is ``None``.

    Raises:
        InvalidArgument: Empty text, or a PID-taking mode with no PID.
    """
    if not text:
        raise InvalidArgument("Command text must not be empty")
    mode = Mode.from_code(text[:2].upper())
    if mode is None or not mode.uses_parameter:
        return CommandFrame(mode=mode, parameter_id=None, text=text)

    parameter_id = text[2:].replace(" ", "")
    if not parameter_id:
        raise InvalidArgument(
            f"Mode {mode.code} requires a parameter id, got {text!r}"
        )
    return CommandFrame(mode=mode, parameter_id=parameter_id, text=text)


def supported_pids_frame(mode: Mode | str, block: int = 0) -> CommandFrame:
    """Build the support query for a 32-PID block.

    Block 0 asks for PIDs 0x01-0x20 (``"01 00"``), block 1 for 0x21-0x40
    (``"01 20"``), and so on.
    """
    if not 0 <= block <= 7:
        raise InvalidArgument(f"Support block must be 0-7, got {block}")
    return build_command(mode, f"{block * PIDS_PER_BLOCK:02X}")
