"""Wiring of the shared store, sink and data source for all resources."""

import logging
from typing import Iterable, Optional

from ..entities import ENTITY_TYPES, get_entity_type
from ..mapping import FieldMappingStore, create_mapping_table
from ..sheets import GoogleSheetsClient
from ..sheets.base import TabularSink
from ..source import HttpDataSource
from ..source.base import DataSource
from .repository import ResourceRepository, SyncResult

logger = logging.getLogger(__name__)


class SyncService:
    """Owns one store, sink and data source and hands out per-resource repositories."""

    def __init__(
        self,
        sink: Optional[TabularSink] = None,
        store: Optional[FieldMappingStore] = None,
        data_source: Optional[DataSource] = None,
    ):
        self.sink = sink or GoogleSheetsClient(
            tab_names={rid: entity.sheet_name for rid, entity in ENTITY_TYPES.items()}
        )
        self.store = store or FieldMappingStore(create_mapping_table(self.sink))
        self.data_source = data_source or HttpDataSource()
        self._repositories: dict[str, ResourceRepository] = {}
        self._initialized = False

    async def initialize(self):
        if not self._initialized:
            await self.store.initialize()
            self._initialized = True

    async def shutdown(self):
        await self.store.close()
        await self.data_source.close()
        self._initialized = False

    def repository(self, resource_id: str) -> ResourceRepository:
        """Repository for a resource id. Raises KeyError for unknown ids."""
        entity_type = get_entity_type(resource_id)
        rid = entity_type.resource_id
        if rid not in self._repositories:
            self._repositories[rid] = ResourceRepository(
                entity_type, self.store, self.sink, self.data_source
            )
        return self._repositories[rid]

    async def sync(self, resource_ids: Optional[Iterable[str]] = None) -> list[SyncResult]:
        """Fetch and persist each resource in turn; one failure doesn't stop the rest."""
        await self.initialize()
        results = []
        for resource_id in resource_ids or ENTITY_TYPES:
            result = await self.repository(resource_id).fetch_and_persist()
            if result.success:
                logger.info(
                    f"{result.resource_id}: {result.written} rows written, {result.skipped} skipped"
                )
            else:
                logger.error(f"{result.resource_id}: sync failed: {'; '.join(result.errors)}")
            results.append(result)
        return results
