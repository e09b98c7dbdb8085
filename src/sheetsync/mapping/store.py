"""Registry of per-resource field path to column name mappings."""

import logging
from typing import Iterable, Optional

from .models import FieldMapping, HeaderDiff, MappingNotFoundError, StoreIOError
from .storage import MappingTable

logger = logging.getLogger(__name__)


def transform_name(path: str) -> str:
    """Turn an API field path into a Title Case column name.

    ``amount.value`` becomes ``Amount Value``, ``dividend_gained`` becomes
    ``Dividend Gained``. Applying it to its own output is a no-op.
    """
    if not isinstance(path, str):
        return ""
    tokens = path.replace("_", " ").replace(".", " ").split()
    return " ".join(token[:1].upper() + token[1:].lower() for token in tokens)


def effective_name(mapping: FieldMapping) -> str:
    """Column name actually shown: user override if set, else the generated one."""
    return mapping.effective_header


class FieldMappingStore:
    """
    Durable registry backing all resources' FieldMapping rows.

    Every operation reads the whole shared table and scopes by resource id;
    writes replace the table in a single call so a merge costs one read and
    one write regardless of how many fields changed.
    """

    def __init__(self, table: MappingTable):
        self.table = table

    async def initialize(self):
        await self.table.initialize()

    async def close(self):
        await self.table.close()

    async def _read_table(self) -> list[FieldMapping]:
        return await self.table.read_all()

    async def get_all(self, resource_id: str) -> list[FieldMapping]:
        """Stored mappings for a resource, in storage order.

        An unreadable or missing table is treated as "no mappings yet".
        """
        try:
            rows = await self._read_table()
        except StoreIOError as e:
            logger.warning(f"Mapping table unreadable, treating '{resource_id}' as unmapped: {e}")
            return []
        return [row for row in rows if row.resource_id == resource_id]

    async def merge(self, resource_id: str, new_paths: Iterable[str]) -> list[FieldMapping]:
        """
        Merge freshly observed paths into a resource's stored mappings.

        Known paths keep their position and user header, with the auto header
        recomputed. Unseen paths are appended in first-seen order. Paths that
        no longer appear are kept. Other resources' rows are written back
        untouched.

        Returns:
            The resource's mappings after the merge, in column order.
        """
        readable = True
        try:
            rows = await self._read_table()
        except StoreIOError as e:
            logger.warning(f"Mapping table unreadable during merge for '{resource_id}': {e}")
            rows = []
            readable = False

        others = [row for row in rows if row.resource_id != resource_id]
        merged = [row for row in rows if row.resource_id == resource_id]
        index = {row.api_field_path: i for i, row in enumerate(merged)}

        appended = []
        for path in new_paths:
            if path in index:
                existing = merged[index[path]]
                merged[index[path]] = existing.model_copy(
                    update={"auto_transformed_header": transform_name(path)}
                )
                continue
            index[path] = len(merged)
            merged.append(
                FieldMapping(
                    resource_id=resource_id,
                    api_field_path=path,
                    auto_transformed_header=transform_name(path),
                )
            )
            appended.append(path)

        if not readable:
            # Writing now would replace rows we could not read
            logger.warning(
                f"Skipping mapping write for '{resource_id}'; using {len(merged)} "
                f"unsaved mappings"
            )
            return merged

        await self.table.replace_all(others + merged)
        if appended:
            logger.info(f"Added {len(appended)} field mappings for '{resource_id}': {', '.join(appended)}")
        logger.info(f"Merged {len(merged)} field mappings for '{resource_id}'")
        return merged

    async def diff(self, resource_id: str, current_paths: Iterable[str]) -> HeaderDiff:
        """Compare stored paths with a fresh path list. Never writes."""
        current = list(dict.fromkeys(current_paths))
        stored = [m.api_field_path for m in await self.get_all(resource_id)]
        stored_set = set(stored)
        current_set = set(current)
        return HeaderDiff(
            added=[path for path in current if path not in stored_set],
            removed=[path for path in stored if path not in current_set],
        )

    async def list_resources(self) -> list[str]:
        """Distinct resource ids in storage order."""
        try:
            rows = await self._read_table()
        except StoreIOError as e:
            logger.warning(f"Mapping table unreadable: {e}")
            return []
        return list(dict.fromkeys(row.resource_id for row in rows))

    async def effective_headers(self, resource_id: str) -> list[str]:
        return [effective_name(m) for m in await self.get_all(resource_id)]

    async def set_user_header(
        self, resource_id: str, path: str, header: Optional[str]
    ) -> FieldMapping:
        """Record a user-chosen column name for one field.

        Raises:
            MappingNotFoundError: If the path is not mapped for the resource
            StoreIOError: If the table can't be read or written
        """
        rows = await self._read_table()
        for i, row in enumerate(rows):
            if row.resource_id == resource_id and row.api_field_path == path:
                updated = row.model_copy(update={"user_defined_header": (header or "").strip()})
                rows[i] = updated
                await self.table.replace_all(rows)
                logger.info(
                    f"Header for {resource_id}/{path} set to '{updated.effective_header}'"
                )
                return updated
        raise MappingNotFoundError(f"No mapping for '{path}' in resource '{resource_id}'")

    async def reset_user_header(self, resource_id: str, path: str) -> FieldMapping:
        """Drop the user override so the generated name applies again."""
        return await self.set_user_header(resource_id, path, "")
