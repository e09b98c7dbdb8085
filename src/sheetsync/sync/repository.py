"""Ties mapping, codec, data source and sink together for one resource."""

import logging
from dataclasses import dataclass, field
from typing import Generic, Optional, Sequence, TypeVar

from ..entities import Entity, EntityCodec, ValidationError
from ..mapping import (
    FieldMappingStore,
    HeaderDiff,
    ResourceMappingCoordinator,
    StructuralError,
)
from ..sheets.base import TabularSink
from ..source.base import DataSource, extract_records

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


@dataclass
class SyncResult:
    """Outcome of one fetch-and-persist cycle."""

    resource_id: str
    fetched: int = 0
    written: int = 0
    skipped: int = 0
    changes: HeaderDiff = field(default_factory=HeaderDiff)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class ResourceRepository(Generic[E]):
    """
    Reads and writes one resource's rows through its effective header set.

    Args:
        entity_type: Entity subclass stored in this resource's table
        store: Shared field mapping store
        sink: Tabular sink holding the resource's rows
        data_source: Optional source of live records
    """

    def __init__(
        self,
        entity_type: type[E],
        store: FieldMappingStore,
        sink: TabularSink,
        data_source: Optional[DataSource] = None,
    ):
        self.entity_type = entity_type
        self.resource_id = entity_type.resource_id
        self.sink = sink
        self.data_source = data_source
        self.codec: EntityCodec[E] = EntityCodec(entity_type)
        self.coordinator = ResourceMappingCoordinator(
            self.resource_id,
            store,
            sink,
            schema=entity_type,
            data_source=data_source,
        )

    def reshape(self, raw_records: Sequence[dict]) -> tuple[list[dict], int]:
        """
        Turn raw API records into model-shaped ones.

        Returns the reshaped records and how many were dropped because the
        entity type could not use them.
        """
        records = []
        dropped = 0
        for raw in raw_records:
            record = self.entity_type.from_api(raw)
            if record is None:
                dropped += 1
                logger.warning(f"Skipping incomplete {self.resource_id} API record")
            else:
                records.append(record)
        return records, dropped

    def _build_all(self, records: Sequence[dict]) -> tuple[list[E], int]:
        entities = []
        skipped = 0
        for record in records:
            try:
                entities.append(self.codec.build(record))
            except ValidationError as e:
                skipped += 1
                logger.warning(f"Skipping invalid {self.resource_id} record: {e}")
        return entities, skipped

    def _write(self, entities: Sequence[E]) -> int:
        headers = self.coordinator.header_set
        rows = [self.codec.encode(entity, headers) for entity in entities]
        self.sink.replace_rows(self.resource_id, rows, self.coordinator.effective_header_names)
        logger.info(f"Saved {len(rows)} rows to '{self.resource_id}'")
        return len(rows)

    async def fetch_and_persist(self) -> SyncResult:
        """
        Fetch live records, refresh the schema from them and rewrite the table.

        Returns:
            SyncResult with counts and any error that stopped the cycle
        """
        result = SyncResult(resource_id=self.resource_id)
        if self.data_source is None:
            result.errors.append("No data source configured")
            return result

        raw_records = extract_records(await self.data_source.fetch(self.resource_id))
        result.fetched = len(raw_records)
        records, result.skipped = self.reshape(raw_records)

        try:
            result.changes = await self.coordinator.refresh(records)
        except (RuntimeError, OSError) as e:
            logger.error(f"Could not initialize headers for '{self.resource_id}': {e}")
            result.errors.append(str(e))
            return result

        if not records:
            logger.info(f"No records for '{self.resource_id}', table left unchanged")
            return result

        entities, invalid = self._build_all(records)
        result.skipped += invalid
        try:
            result.written = self._write(entities)
        except (RuntimeError, OSError) as e:
            logger.error(f"Failed to write '{self.resource_id}': {e}")
            result.errors.append(str(e))
        return result

    async def save(self, entities: Sequence[E]) -> int:
        """
        Replace the resource's rows with ``entities``.

        Raises:
            MappingInitializationError: If no schema is available
        """
        await self.coordinator.ensure_initialized()
        return self._write(entities)

    async def load_all(self) -> list[E]:
        """
        Read every row back into entities. Rows that fail to decode or
        validate are logged and skipped.

        Raises:
            MappingInitializationError: If no schema is available
        """
        await self.coordinator.ensure_initialized()
        headers = self.coordinator.header_set
        entities = []
        for index, row in enumerate(self.sink.read_all_rows(self.resource_id), start=2):
            try:
                entities.append(self.codec.from_row(row, headers))
            except (ValidationError, StructuralError) as e:
                logger.warning(f"Skipping row {index} of '{self.resource_id}': {e}")
        logger.info(f"Loaded {len(entities)} {self.resource_id} records")
        return entities
