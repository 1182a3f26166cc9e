"""Tests for per-PID payload decoders."""

import pytest

from elm327_mcp.models.exchange import ExchangeResult, ExchangeTiming
from elm327_mcp.protocol.commands import Mode, build_command, parse_command
from elm327_mcp.protocol.errors import InvalidArgument, NoData
from elm327_mcp.protocol.parser import (
    DECODERS,
    AvailablePidsDecoder,
    CoolantTemperatureDecoder,
    EngineLoadDecoder,
    EngineRpmDecoder,
    VehicleSpeedDecoder,
    data_bytes,
    decode_result,
    format_value,
    get_decoder,
    query_supported_pids,
)
from elm327_mcp.protocol.session import ProtocolSession


def _result(command: str, payload: bytes, imperial: bool = False) -> ExchangeResult:
    return ExchangeResult(
        frame=parse_command(command),
        payload=payload,
        response=payload.hex().upper(),
        timing=ExchangeTiming(start=100.0, end=100.05),
        imperial_units=imperial,
    )


def test_data_bytes_skips_header():
    assert data_bytes(bytes([0x41, 0x0C, 0x1A, 0xF8]), 2) == bytes([0x1A, 0xF8])


def test_data_bytes_too_short():
    with pytest.raises(InvalidArgument):
        data_bytes(bytes([0x41, 0x0C, 0x1A]), 2)


def test_engine_rpm():
    """(A*256 + B) / 4: 0x1AF8 = 6904 -> 1726 RPM."""
    payload = bytes([0x41, 0x0C, 0x1A, 0xF8])
    assert EngineRpmDecoder().decode(payload, False) == 1726


def test_vehicle_speed():
    payload = bytes([0x41, 0x0D, 100])
    decoder = VehicleSpeedDecoder()
    assert decoder.decode(payload, False) == 100.0
    assert decoder.decode(payload, True) == 62.1
    assert decoder.unit(False) == "km/h"
    assert decoder.unit(True) == "mph"


def test_coolant_temperature():
    payload = bytes([0x41, 0x05, 0x7B])
    decoder = CoolantTemperatureDecoder()
    assert decoder.decode(payload, False) == 83.0
    assert decoder.decode(payload, True) == 181.4


def test_engine_load():
    assert EngineLoadDecoder().decode(bytes([0x41, 0x04, 0xFF]), False) == 100.0


def test_available_pids_decoder():
    payload = bytes([0x41, 0x20, 0x80, 0x00, 0x00, 0x01])
    assert AvailablePidsDecoder(base=0x20).decode(payload, False) == [0x21, 0x40]


def test_format_value():
    payload = bytes([0x41, 0x0D, 100])
    assert format_value(VehicleSpeedDecoder(), payload, True) == "62.1mph"
    assert format_value(AvailablePidsDecoder(), bytes([0x41, 0, 0x80, 0, 0, 0]), False) == "[1]"


def test_decoder_registry():
    assert isinstance(DECODERS[(Mode.CURRENT_DATA, 0x0C)], EngineRpmDecoder)
    assert DECODERS[(Mode.CURRENT_DATA, 0x40)].base == 0x40
    assert get_decoder(Mode.CURRENT_DATA, "0d") is DECODERS[(Mode.CURRENT_DATA, 0x0D)]
    assert get_decoder(None, "0C") is None
    assert get_decoder(Mode.CURRENT_DATA, "XX") is None
    assert get_decoder(Mode.STORED_DIAGNOSTIC_CODES, None) is None


def test_decode_result_known_pid():
    decoded = decode_result(_result("01 0C", bytes([0x41, 0x0C, 0x1A, 0xF8])))
    assert decoded["name"] == "Engine RPM"
    assert decoded["value"] == 1726
    assert decoded["unit"] == "RPM"
    assert decoded["formatted"] == "1726RPM"
    assert decoded["command"] == "01 0C"
    assert decoded["payload"] == [0x41, 0x0C, 0x1A, 0xF8]


def test_decode_result_uses_unit_flag():
    decoded = decode_result(_result("01 05", bytes([0x41, 0x05, 0x28]), imperial=True))
    assert decoded["value"] == 32.0
    assert decoded["unit"] == "F"


def test_decode_result_unknown_pid():
    decoded = decode_result(_result("01 A6", bytes([0x41, 0xA6, 1, 2, 3, 4])))
    assert "value" not in decoded
    assert decoded["response"] == "41A601020304"


class _BlockAdapter:
    """Answers support queries from a table of reply strings."""

    def __init__(self, replies: dict[str, bytes]) -> None:
        self.replies = replies
        self.pending = b""
        self.sent: list[bytes] = []

    def write(self, data: bytes) -> int:
        self.sent.append(data)
        self.pending = self.replies[data.decode().strip()]
        return len(data)

    def flush(self) -> None:
        pass

    def read_byte(self):
        if not self.pending:
            return None
        b, self.pending = self.pending[0], self.pending[1:]
        return b


def test_query_supported_pids_walks_blocks():
    adapter = _BlockAdapter({
        "01 00": b"41 00 BE 1F A8 13\r>",
        "01 20": b"41 20 80 00 00 00\r>",
    })
    pids = query_supported_pids(ProtocolSession(adapter))
    assert adapter.sent == [b"01 00\r", b"01 20\r"]
    assert pids[:3] == [0x01, 0x03, 0x04]
    assert pids[-2:] == [0x20, 0x21]


def test_query_supported_pids_propagates_errors():
    adapter = _BlockAdapter({"09 00": b"NO DATA\r>"})
    with pytest.raises(NoData):
        query_supported_pids(ProtocolSession(adapter), Mode.VEHICLE_INFORMATION)


def test_command_frame_feeds_decoder():
    frame = build_command(Mode.CURRENT_DATA, "0D")
    assert get_decoder(frame.mode, frame.parameter_id).name == "Vehicle Speed"
