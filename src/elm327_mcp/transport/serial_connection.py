"""Serial connection to an ELM327 adapter.

Uses ``pyserial``'s URL handlers, so the same class covers USB/RS-232
adapters (``/dev/ttyUSB0``, ``COM3``), Bluetooth SPP ports
(``/dev/rfcomm0``) and Wi-Fi adapters (``socket://192.168.0.10:35000``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import serial

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 38400
READ_TIMEOUT_S = 5.0


@dataclass
class PortInfo:
    """Where and how the connection was opened."""

    url: str = ""
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = READ_TIMEOUT_S


class SerialConnection:
    """Manages the byte stream to the adapter.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write(b"01 0C\\r")
        conn.read_byte()
        conn.close()
    """

    def __init__(
        self,
        url: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = READ_TIMEOUT_S,
    ) -> None:
        self._port = None
        self._port_info = PortInfo(url=url, baudrate=baudrate, timeout=timeout)

    @property
    def connected(self) -> bool:
        return self._port is not None and self._port.is_open

    @property
    def port_info(self) -> PortInfo:
        return self._port_info

    def open(self) -> PortInfo:
        """Open the port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        info = self._port_info
        try:
            self._port = serial.serial_for_url(
                info.url, baudrate=info.baudrate, timeout=info.timeout
            )
        except (serial.SerialException, ValueError) as e:
            raise ConnectionError(
                f"Could not open ELM327 adapter at {info.url!r}. "
                f"Check the port name and permissions. Last error: {e}"
            ) from e

        logger.info("Connected to %s at %d baud", info.url, info.baudrate)
        return info

    def close(self) -> None:
        """Close the port."""
        if self._port is None:
            return

        try:
            self._port.close()
        except serial.SerialException as e:
            logger.warning("Error closing port: %s", e)
        finally:
            self._port = None
            logger.info("Disconnected")

    def _require_port(self):
        if not self.connected:
            raise ConnectionError("Not connected to adapter")
        return self._port

    def write(self, data: bytes) -> int:
        """Write raw bytes to the adapter.

        Raises:
            ConnectionError: If not connected.
            serial.SerialException: If the write fails.
        """
        return self._require_port().write(data)

    def flush(self) -> None:
        self._require_port().flush()

    def read_byte(self) -> int | None:
        """Read one byte, or ``None`` when the read timed out.

        A timeout is treated as end of stream by the protocol session.
        """
        data = self._require_port().read(1)
        if not data:
            return None
        return data[0]

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()
