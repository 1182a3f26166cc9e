"""Error taxonomy and the ordered adapter-error classifier.

ELM327 adapters report failures in-band as text (``NO DATA``,
``UNABLE TO CONNECT``, ...). The classifier checks a reply against a fixed,
ordered list of signatures; the first one that matches wins.
"""

from __future__ import annotations

import re
from typing import Callable, ClassVar


class Elm327Error(Exception):
    """Base class for every error raised by the protocol engine."""


class InvalidArgument(Elm327Error, ValueError):
    """Malformed input detected before any I/O took place."""


class NonNumericResponse(Elm327Error):
    """Normalized response still contains non-hex characters."""

    def __init__(self, response: str) -> None:
        super().__init__(f"Non-numeric response: {response!r}")
        self.response = response


class Cancelled(Elm327Error):
    """The exchange was cancelled while waiting for the adapter."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Exchange cancelled: {command!r}")
        self.command = command


class ProtocolError(Elm327Error):
    """An error condition reported by the adapter itself."""

    kind: ClassVar[str] = "PROTOCOL_ERROR"

    def __init__(self, command: str, response: str = "") -> None:
        super().__init__(f"{self.kind} while running {command!r}: {response!r}")
        self.command = command
        self.response = response


class UnableToConnect(ProtocolError):
    kind = "UNABLE_TO_CONNECT"


class BusInit(ProtocolError):
    kind = "BUS_INIT"


class MisunderstoodCommand(ProtocolError):
    kind = "MISUNDERSTOOD_COMMAND"


class NoData(ProtocolError):
    kind = "NO_DATA"


class Stopped(ProtocolError):
    kind = "STOPPED"


class UnknownError(ProtocolError):
    kind = "UNKNOWN_ERROR"


class UnsupportedCommand(ProtocolError):
    kind = "UNSUPPORTED_COMMAND"


_INLINE_WHITESPACE = re.compile(r"[^\S\r\n]+")
_LINE_BREAKS = re.compile(r"[\r\n]+")


def _clean(text: str) -> str:
    """Drop whitespace within lines; keep one ``\\n`` between reply lines."""
    text = _INLINE_WHITESPACE.sub("", text).upper()
    return _LINE_BREAKS.sub("\n", text).strip("\n")


def _search(pattern: str, flags: int = 0) -> Callable[[str, str], bool]:
    regex = re.compile(pattern, flags)
    return lambda text, command: regex.search(text) is not None


def _echo_misunderstood(text: str, command: str) -> bool:
    return f"{_clean(command)}?" in text.replace("\n", "")


# Patterns run against uppercase text with one reply line per ``\n``.
# Priority order matters: connection-level failures are reported before the
# more specific signatures that could match the same text.
ERROR_SIGNATURES: tuple[tuple[Callable[[str, str], bool], type[ProtocolError]], ...] = (
    (_search(r"UNABLETOCONNECT"), UnableToConnect),
    (_search(r"BUSINIT:?\.*ERROR"), BusInit),
    (_echo_misunderstood, MisunderstoodCommand),
    (_search(r"NODATA"), NoData),
    (_search(r"STOPPED"), Stopped),
    (_search(r"ERROR"), UnknownError),
    # Negative response on a line of its own: 7F <mode 00-0A> <NRC 11 or 12>
    (_search(r"^7F0[0-9A]1[12]$", re.MULTILINE), UnsupportedCommand),
)


def classify(text: str, command: str) -> ProtocolError | None:
    """Return the first adapter error matching ``text``, or ``None``.

    Args:
        text: Adapter reply. Line breaks are significant for the negative
            response signature, other whitespace is ignored.
        command: Command text that produced the reply.
    """
    cleaned = _clean(text)
    for matches, error_cls in ERROR_SIGNATURES:
        if matches(cleaned, command):
            return error_cls(command, cleaned)
    return None


def check_for_errors(text: str, command: str) -> None:
    """Raise the classified :class:`ProtocolError` if ``text`` is one."""
    error = classify(text, command)
    if error is not None:
        raise error
