"""Tabular sinks: Google Sheets and in-memory."""

from .base import TabularSink
from .client import GoogleSheetsClient
from .memory import MemorySink

__all__ = [
    "TabularSink",
    "GoogleSheetsClient",
    "MemorySink",
]
