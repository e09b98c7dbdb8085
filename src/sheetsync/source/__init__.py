"""Data sources for brokerage records."""

from .base import DataSource, extract_records
from .http import HttpDataSource

__all__ = ["DataSource", "HttpDataSource", "extract_records"]
