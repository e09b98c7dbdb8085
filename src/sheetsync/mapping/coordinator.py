"""Per-resource lifecycle of the effective header set."""

import logging
from typing import TYPE_CHECKING, Any, Optional, Protocol, Sequence

from ..config import settings
from ..sheets.base import TabularSink
from .models import (
    FieldMapping,
    HeaderDiff,
    MappingInitializationError,
    MappingState,
    StructuralError,
)
from .paths import extract_paths
from .store import FieldMappingStore

if TYPE_CHECKING:
    from ..source.base import DataSource

logger = logging.getLogger(__name__)


class DeclaresFieldPaths(Protocol):
    """Anything that can name the minimal field paths of its records."""

    def declare_default_field_paths(self) -> list[str]: ...


class ResourceMappingCoordinator:
    """
    Decides which schema source to trust for one resource and keeps the
    in-memory effective header set in step with the store and the sink.

    Schema sources, in the order ``ensure_initialized`` tries them:
    1. Mappings already in the store
    2. The declared default paths of the resource's entity type
    3. A live sample from the data source

    A live sample is only needed when nothing was ever stored or declared,
    so reads and writes keep working while the remote service is down.
    """

    def __init__(
        self,
        resource_id: str,
        store: FieldMappingStore,
        sink: TabularSink,
        schema: Optional[DeclaresFieldPaths] = None,
        data_source: Optional["DataSource"] = None,
        max_depth: Optional[int] = None,
    ):
        self.resource_id = resource_id
        self.store = store
        self.sink = sink
        self.schema = schema
        self.data_source = data_source
        self.max_depth = max_depth or settings.max_path_depth
        self.state = MappingState.UNINITIALIZED
        self._headers: list[FieldMapping] = []

    @property
    def is_initialized(self) -> bool:
        return self.state == MappingState.INITIALIZED

    @property
    def header_set(self) -> list[FieldMapping]:
        """The effective header set, in column order."""
        return list(self._headers)

    @property
    def effective_header_names(self) -> list[str]:
        return [m.effective_header for m in self._headers]

    def _fallback(self, fallback_paths: Optional[Sequence[str]]) -> list[str]:
        if fallback_paths is not None:
            return list(fallback_paths)
        if self.schema is not None:
            return list(self.schema.declare_default_field_paths())
        return []

    def _sample_paths(self, sample: Any) -> list[str]:
        try:
            return extract_paths(sample, self.max_depth)
        except StructuralError as e:
            logger.warning(f"Could not infer schema for '{self.resource_id}': {e}")
            return []

    def _adopt(self, mappings: list[FieldMapping]) -> None:
        self._headers = list(mappings)
        self.state = MappingState.INITIALIZED
        self.sink.declare_columns(self.resource_id, self.effective_header_names)

    async def initialize_from_sample(
        self, sample: Any, fallback_paths: Optional[Sequence[str]] = None
    ) -> bool:
        """
        Derive the schema from a live sample, merge it into the store and
        adopt the result.

        Falls back to the declared paths when the sample yields none.

        Returns:
            False if neither the sample nor the fallback yields any path
        """
        paths = self._sample_paths(sample)
        origin = "sample"
        if not paths:
            paths = self._fallback(fallback_paths)
            origin = "declared schema"

        if not paths:
            logger.error(f"No sample or declared fields for '{self.resource_id}'")
            return False

        mappings = await self.store.merge(self.resource_id, paths)
        self._adopt(mappings)
        logger.info(
            f"Initialized '{self.resource_id}' from {origin} with {len(mappings)} columns"
        )
        return True

    async def initialize_from_store(
        self, fallback_paths: Optional[Sequence[str]] = None
    ) -> bool:
        """
        Adopt stored mappings, or seed the store from the declared paths.

        Returns:
            False if neither storage nor the fallback yields any field
        """
        stored = await self.store.get_all(self.resource_id)
        if stored:
            self._adopt(stored)
            logger.info(f"Initialized '{self.resource_id}' from {len(stored)} stored mappings")
            return True

        fallback = self._fallback(fallback_paths)
        if not fallback:
            return False

        mappings = await self.store.merge(self.resource_id, fallback)
        self._adopt(mappings)
        logger.info(
            f"Initialized '{self.resource_id}' from declared schema with {len(mappings)} columns"
        )
        return True

    async def _fetch_sample(self) -> Any:
        if self.data_source is None:
            return None
        try:
            return await self.data_source.fetch(self.resource_id)
        except Exception as e:
            logger.warning(f"Live sample unavailable for '{self.resource_id}': {e}")
            return None

    async def ensure_initialized(self) -> None:
        """
        Make sure an effective header set is loaded.

        Raises:
            MappingInitializationError: If no stored, declared or live schema
                is available
        """
        if self.is_initialized:
            return

        if await self.initialize_from_store():
            return

        logger.info(f"No stored or declared schema for '{self.resource_id}', fetching a sample")
        sample = await self._fetch_sample()
        if not await self.initialize_from_sample(sample, fallback_paths=[]):
            raise MappingInitializationError(self.resource_id)

    async def refresh(self, sample: Any) -> HeaderDiff:
        """
        Re-derive the schema from a fresh sample and report what changed.

        Paths that disappeared are only reported; their mappings stay. An
        empty sample leaves the current schema alone.

        Raises:
            MappingInitializationError: If no schema source is available
        """
        paths = self._sample_paths(sample)
        if not paths:
            logger.warning(f"Empty sample for '{self.resource_id}', keeping current schema")
            await self.ensure_initialized()
            return HeaderDiff()

        changes = await self.store.diff(self.resource_id, paths)
        if changes.added:
            logger.warning(f"New fields detected for '{self.resource_id}': {', '.join(changes.added)}")
        if changes.removed:
            logger.warning(
                f"Fields missing from sample for '{self.resource_id}': {', '.join(changes.removed)}"
            )

        if not await self.initialize_from_sample(sample):
            raise MappingInitializationError(self.resource_id)
        return changes
