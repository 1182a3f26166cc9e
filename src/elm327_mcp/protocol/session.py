"""Request/response exchanges with an ELM327 adapter.

One exchange is strictly sequential: write the command, optionally wait for
the adapter to settle, then read until the ``>`` prompt or end of stream.
The transport is owned by the caller; two exchanges must never run on the
same transport at once.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Protocol

from ..models.exchange import ExchangeResult, ExchangeTiming
from .commands import CommandFrame
from .errors import Cancelled, classify
from .framing import PROMPT, TERMINATOR, decode_hex, normalize, prepare

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Byte-oriented duplex channel to the adapter."""

    def write(self, data: bytes) -> int | None: ...

    def flush(self) -> None: ...

    def read_byte(self) -> int | None:
        """Return the next byte, or ``None`` at end of stream."""
        ...


class ProtocolSession:
    """Runs exchanges over a caller-owned transport.

    Usage::

        session = ProtocolSession(conn, response_delay=0.1)
        result = session.execute(build_command(Mode.CURRENT_DATA, "0C"))
        result.payload  # b"\\x41\\x0c\\x1a\\xf8"
    """

    def __init__(
        self,
        transport: Transport,
        response_delay: float = 0.0,
        imperial_units: bool = False,
    ) -> None:
        self.transport = transport
        self.response_delay = response_delay
        self.imperial_units = imperial_units

    def execute(
        self,
        frame: CommandFrame,
        cancel: threading.Event | None = None,
    ) -> ExchangeResult:
        """Send ``frame`` and decode the adapter's reply.

        Args:
            frame: The request to send.
            cancel: Checked between byte reads; when set the exchange is
                abandoned with :class:`Cancelled`.

        Raises:
            ProtocolError: The adapter reported an error.
            NonNumericResponse: The reply is not hex after normalization.
            Cancelled: ``cancel`` was set while reading.
        """
        logger.debug("-> %s", frame.wire_text)
        return self._exchange(
            frame, frame.wire_text.encode("ascii") + TERMINATOR, cancel
        )

    def resend(
        self,
        frame: CommandFrame,
        cancel: threading.Event | None = None,
    ) -> ExchangeResult:
        """Ask the adapter to repeat its last reply.

        Only the terminator is written; ``frame`` identifies the original
        request for error reporting.
        """
        logger.debug("-> (repeat) %s", frame.wire_text)
        return self._exchange(frame, TERMINATOR, cancel)

    def _exchange(
        self,
        frame: CommandFrame,
        data: bytes,
        cancel: threading.Event | None,
    ) -> ExchangeResult:
        start = time.time()
        started = time.monotonic()

        self.transport.write(data)
        self.transport.flush()

        # Settling time for slow adapters; not interruptible
        if self.response_delay > 0:
            time.sleep(self.response_delay)

        raw = self._read_until_prompt(frame, cancel)
        logger.debug("<- %r", raw)

        prepared = prepare(raw)
        error = classify(prepared, frame.wire_text)
        if error is not None:
            logger.info("Adapter error for %s: %s", frame.wire_text, error.kind)
            raise error

        response = normalize(prepared)
        payload = decode_hex(response)

        timing = ExchangeTiming(
            start=start,
            end=start + (time.monotonic() - started),
            delay=self.response_delay,
        )
        return ExchangeResult(
            frame=frame,
            payload=payload,
            response=response,
            timing=timing,
            imperial_units=self.imperial_units,
        )

    def _read_until_prompt(
        self,
        frame: CommandFrame,
        cancel: threading.Event | None,
    ) -> str:
        buf = bytearray()
        prompt = PROMPT[0]
        while True:
            if cancel is not None and cancel.is_set():
                raise Cancelled(frame.wire_text)
            b = self.transport.read_byte()
            if b is None or b == prompt:
                break
            buf.append(b)
        return buf.decode("ascii", errors="replace")
