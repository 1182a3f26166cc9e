"""Response text normalization and hex-pair decoding.

An adapter reply as it arrives on the wire::

    01 0C\\r SEARCHING...\\r41 0C 1A F8 \\r\\r>
    |echo |  |banner/progress |  payload  | | prompt

The command is sent as plain ASCII followed by a single carriage return;
the reply ends at the ``>`` prompt. Whitespace, the ``SEARCHING`` banner and
the ``BUS INIT`` progress markers are stripped before the remaining hex
digits are paired into bytes.
"""

from __future__ import annotations

import re

from .errors import NonNumericResponse

TERMINATOR = b"\r"
PROMPT = b">"

_WHITESPACE = re.compile(r"\s+")
_INLINE_WHITESPACE = re.compile(r"[^\S\r\n]+")
_LINE_BREAKS = re.compile(r"[\r\n]+")
_BANNER = re.compile(r"SEARCHING")
# Progress markers printed while the adapter initializes the bus
_PROGRESS = re.compile(r"BUS INIT|BUSINIT|\.")
_HEX_DIGITS = re.compile(r"[0-9A-F]+")


def prepare(raw: str) -> str:
    """Strip whitespace and the ``SEARCHING`` banner, line by line.

    This is the text error signatures are matched against. Non-empty reply
    lines are joined with ``\\n`` so a negative response can be told apart
    from payload bytes; bus-init progress markers are kept because the
    bus-init failure signature contains them.
    """
    lines = (
        _BANNER.sub("", _INLINE_WHITESPACE.sub("", line))
        for line in _LINE_BREAKS.split(raw)
    )
    return "\n".join(line for line in lines if line)


def normalize(raw: str) -> str:
    """Reduce a raw adapter reply to its hex digits.

    Whitespace is removed before and after token removal, and the passes
    repeat until nothing changes so the result is stable under a second
    call.
    """
    text = raw
    while True:
        cleaned = _WHITESPACE.sub("", text)
        cleaned = _PROGRESS.sub("", cleaned)
        cleaned = _BANNER.sub("", cleaned)
        cleaned = _WHITESPACE.sub("", cleaned)
        if cleaned == text:
            return cleaned
        text = cleaned


def decode_hex(text: str) -> bytes:
    """Decode normalized hex text into payload bytes.

    Characters are paired left to right, most significant nibble first.
    A trailing unpaired digit is dropped.

    Raises:
        NonNumericResponse: If ``text`` is empty or holds anything other
            than uppercase hex digits.
    """
    if not _HEX_DIGITS.fullmatch(text):
        raise NonNumericResponse(text)
    return bytes(int(text[i : i + 2], 16) for i in range(0, len(text) - 1, 2))
