"""Data models for exchange results."""

from .exchange import ExchangeResult, ExchangeTiming
