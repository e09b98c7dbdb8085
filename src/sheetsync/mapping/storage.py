"""Persistence backends for the field mapping table."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import aiosqlite

from ..config import settings
from ..sheets.base import TabularSink
from .models import MAPPING_TABLE_COLUMNS, FieldMapping, StoreIOError

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


class MappingTable(ABC):
    """A flat four-column table shared by every resource's field mappings.

    Backends only know how to read the whole table and replace the whole
    table; scoping by resource happens in FieldMappingStore.
    """

    async def initialize(self):
        """Prepare the backend for use."""
        pass

    async def close(self):
        """Release any held resources."""
        pass

    @abstractmethod
    async def read_all(self) -> list[FieldMapping]:
        """Return every row in storage order. Raises StoreIOError."""
        pass

    @abstractmethod
    async def replace_all(self, mappings: list[FieldMapping]) -> None:
        """Replace the table contents in one write. Raises StoreIOError."""
        pass


class SqliteMappingTable(MappingTable):
    """Mapping table stored in a local SQLite database."""

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else settings.database_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def initialize(self):
        """Initialize the database and create the table if it doesn't exist."""
        if str(self.db_path) != IN_MEMORY:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(str(self.db_path))

        await self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS field_mappings (
                position INTEGER PRIMARY KEY AUTOINCREMENT,
                resource_id TEXT NOT NULL,
                api_field_path TEXT NOT NULL,
                auto_transformed_header TEXT NOT NULL,
                user_defined_header TEXT NOT NULL DEFAULT '',
                UNIQUE(resource_id, api_field_path)
            );

            CREATE INDEX IF NOT EXISTS idx_field_mappings_resource
                ON field_mappings(resource_id);
            """
        )
        await self._connection.commit()
        logger.info(f"SqliteMappingTable initialized at {self.db_path}")

    async def close(self):
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def read_all(self) -> list[FieldMapping]:
        if self._connection is None:
            raise StoreIOError("Mapping database is not initialized")

        try:
            async with self._connection.execute(
                """
                SELECT resource_id, api_field_path, auto_transformed_header,
                       user_defined_header
                FROM field_mappings
                ORDER BY position
                """
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreIOError(f"Failed to read field mappings: {e}") from e

        return [FieldMapping.from_row(list(row)) for row in rows]

    async def replace_all(self, mappings: list[FieldMapping]) -> None:
        if self._connection is None:
            raise StoreIOError("Mapping database is not initialized")

        try:
            await self._connection.execute("DELETE FROM field_mappings")
            await self._connection.executemany(
                """
                INSERT INTO field_mappings
                (resource_id, api_field_path, auto_transformed_header, user_defined_header)
                VALUES (?, ?, ?, ?)
                """,
                [tuple(m.to_row()) for m in mappings],
            )
            await self._connection.commit()
        except aiosqlite.Error as e:
            await self._connection.rollback()
            raise StoreIOError(f"Failed to write field mappings: {e}") from e

        logger.debug(f"Wrote {len(mappings)} field mappings to {self.db_path}")


class SheetMappingTable(MappingTable):
    """Mapping table kept as a tab of the synchronized spreadsheet.

    Keeping it in the spreadsheet lets users rename columns by editing the
    userDefinedHeader column directly.
    """

    def __init__(self, sink: TabularSink, sheet_name: Optional[str] = None):
        self.sink = sink
        self.sheet_name = sheet_name or settings.mapping_sheet_name

    async def read_all(self) -> list[FieldMapping]:
        try:
            rows = self.sink.read_all_rows(self.sheet_name)
        except Exception as e:
            raise StoreIOError(f"Failed to read '{self.sheet_name}': {e}") from e

        mappings = []
        for row in rows or []:
            if not row or len(row) < 2:
                continue
            mapping = FieldMapping.from_row(row)
            if mapping.resource_id and mapping.api_field_path:
                mappings.append(mapping)
        return mappings

    async def replace_all(self, mappings: list[FieldMapping]) -> None:
        try:
            self.sink.replace_rows(
                self.sheet_name,
                [m.to_row() for m in mappings],
                list(MAPPING_TABLE_COLUMNS),
            )
        except Exception as e:
            raise StoreIOError(f"Failed to write '{self.sheet_name}': {e}") from e


def create_mapping_table(sink: Optional[TabularSink] = None) -> MappingTable:
    """Build the backend selected by ``settings.mapping_backend``."""
    if settings.mapping_backend == "sheet":
        if sink is None:
            raise ValueError("The 'sheet' mapping backend requires a tabular sink")
        return SheetMappingTable(sink)
    if settings.mapping_backend == "sqlite":
        return SqliteMappingTable()
    raise ValueError(f"Unknown mapping backend: {settings.mapping_backend}")
