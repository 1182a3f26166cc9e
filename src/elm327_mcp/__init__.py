"""Client-side protocol engine and MCP tools for ELM327 OBD-II adapters."""

__version__ = "0.1.0"
