"""Protocol layer: command frames, response normalization, error classification."""

from .commands import CommandFrame, Mode, build_command, parse_command
from .framing import decode_hex, normalize
from .errors import Elm327Error, InvalidArgument, NonNumericResponse, ProtocolError
