"""Tabular sink interface."""

from abc import ABC, abstractmethod
from typing import Any


class TabularSink(ABC):
    """A grid-like store with one table per resource.

    Rows never include the header row; header names are always passed
    alongside so the sink can keep its first row in sync.
    """

    @abstractmethod
    def declare_columns(self, resource_id: str, header_names: list[str]) -> None:
        """Set the header row of a resource's table."""
        pass

    @abstractmethod
    def replace_rows(
        self, resource_id: str, rows: list[list[Any]], header_names: list[str]
    ) -> None:
        """Replace every data row of a resource's table in one bulk write."""
        pass

    @abstractmethod
    def read_all_rows(self, resource_id: str) -> list[list[Any]]:
        """Return every data row (header excluded); empty if the table is missing."""
        pass
