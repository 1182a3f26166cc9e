"""Byte-stream transports to the adapter."""

from .serial_connection import SerialConnection
