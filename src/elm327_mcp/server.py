"""MCP server entry point for ELM327 OBD-II adapters.

Exposes the protocol engine as tools via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .protocol.commands import CommandFrame, Mode, build_command, parse_command
from .protocol.errors import Elm327Error
from .protocol.parser import decode_result, query_supported_pids
from .protocol.session import ProtocolSession
from .transport.serial_connection import DEFAULT_BAUDRATE, SerialConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "elm327",
    instructions="MCP server for querying vehicles through an ELM327 OBD-II adapter",
)

# Global connection state
_connection: SerialConnection | None = None
_session: ProtocolSession | None = None
_last_frame: CommandFrame | None = None


def _get_session() -> ProtocolSession:
    """Get the active protocol session, raising if not connected."""
    if _connection is None or _session is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to adapter. Use the 'connect' tool first."
        )
    return _session


def _error(e: Elm327Error) -> dict[str, Any]:
    return {"error": str(e), "kind": getattr(e, "kind", type(e).__name__)}


def _run(frame: CommandFrame) -> dict[str, Any]:
    global _last_frame
    session = _get_session()
    try:
        result = session.execute(frame)
        _last_frame = frame
        return decode_result(result)
    except Elm327Error as e:
        return _error(e)


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str,
    baudrate: int = DEFAULT_BAUDRATE,
    response_delay: float = 0.0,
    imperial_units: bool = False,
) -> dict[str, Any]:
    """Open a connection to an ELM327 adapter.

    Args:
        port: Serial device (e.g. /dev/ttyUSB0, COM3) or a
              socket://host:port URL for Wi-Fi adapters.
        baudrate: Serial speed (default 38400).
        response_delay: Seconds to wait between sending a command and
                        reading the reply.
        imperial_units: Report decoded values in imperial units.
    """
    global _connection, _session
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _connection.port_info.url,
        }

    _connection = SerialConnection(port, baudrate=baudrate)
    info = _connection.open()
    _session = ProtocolSession(
        _connection,
        response_delay=response_delay,
        imperial_units=imperial_units,
    )
    return {"connected": True, "port": info.url, "baudrate": info.baudrate}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the connection to the adapter."""
    global _connection, _session, _last_frame
    if _connection is None:
        return {"disconnected": True}
    _connection.close()
    _connection = None
    _session = None
    _last_frame = None
    return {"disconnected": True}


# ─── QUERY TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def send_command(command: str) -> dict[str, Any]:
    """Send a literal command (e.g. "01 0C", "03") and return the reply.

    Known mode/PID pairs are decoded; others return the raw payload.
    """
    try:
        frame = parse_command(command)
    except Elm327Error as e:
        return _error(e)
    return _run(frame)


@mcp.tool()
def repeat_last() -> dict[str, Any]:
    """Ask the adapter to repeat its reply to the previous command."""
    session = _get_session()
    if _last_frame is None:
        return {"error": "No command has been sent yet"}
    try:
        result = session.resend(_last_frame)
    except Elm327Error as e:
        return _error(e)
    return result.to_dict()


@mcp.tool()
def read_pid(pid: str, mode: str = "01") -> dict[str, Any]:
    """Read a single parameter id.

    Args:
        pid: Parameter id in hex (e.g. "0C" for engine RPM).
        mode: Two-character mode code (default "01", current data).
    """
    try:
        frame = build_command(mode, pid)
    except Elm327Error as e:
        return _error(e)
    return _run(frame)


@mcp.tool()
def list_supported_pids(mode: str = "01") -> dict[str, Any]:
    """List every PID the vehicle reports as supported for a mode.

    Args:
        mode: Two-character mode code (default "01").
    """
    session = _get_session()
    resolved = Mode.from_code(mode.upper())
    if resolved is None or not resolved.uses_parameter:
        return {"error": f"Mode {mode!r} has no supported-PID query"}
    try:
        pids = query_supported_pids(session, resolved)
    except Elm327Error as e:
        return _error(e)
    return {"mode": resolved.code, "pids": [f"{pid:02X}" for pid in pids]}


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
