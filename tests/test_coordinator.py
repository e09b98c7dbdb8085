"""Tests for the per-resource mapping coordinator."""

from unittest.mock import AsyncMock, Mock

import pytest

from sheetsync.entities import Dividend
from sheetsync.mapping import (
    FieldMappingStore,
    MappingInitializationError,
    MappingState,
    MappingTable,
    ResourceMappingCoordinator,
    StoreIOError,
)


class FixedSchema:
    def __init__(self, paths):
        self.paths = paths

    def declare_default_field_paths(self):
        return list(self.paths)


@pytest.fixture
def make_coordinator(mapping_store, memory_sink, mock_data_source):
    def _make(schema=None, resource_id="DIVIDENDS"):
        return ResourceMappingCoordinator(
            resource_id,
            mapping_store,
            memory_sink,
            schema=schema,
            data_source=mock_data_source,
        )

    return _make


class TestInitializeFromSample:
    @pytest.mark.asyncio
    async def test_sample_paths_become_headers(self, make_coordinator, memory_sink):
        coordinator = make_coordinator()
        sample = [{"id": 1, "amount": {"value": 10, "currency": "USD"}}]

        assert await coordinator.initialize_from_sample(sample)

        assert coordinator.state == MappingState.INITIALIZED
        assert coordinator.effective_header_names == ["Id", "Amount Value", "Amount Currency"]
        assert memory_sink.headers["DIVIDENDS"] == coordinator.effective_header_names

    @pytest.mark.asyncio
    async def test_empty_sample_uses_fallback(self, make_coordinator):
        coordinator = make_coordinator(schema=FixedSchema(["id", "ticker"]))

        assert await coordinator.initialize_from_sample([])

        assert [m.api_field_path for m in coordinator.header_set] == ["id", "ticker"]

    @pytest.mark.asyncio
    async def test_explicit_fallback_wins_over_schema(self, make_coordinator):
        coordinator = make_coordinator(schema=FixedSchema(["id"]))
        assert await coordinator.initialize_from_sample(None, fallback_paths=["name"])
        assert coordinator.effective_header_names == ["Name"]

    @pytest.mark.asyncio
    async def test_fails_without_sample_or_fallback(self, make_coordinator, memory_sink):
        coordinator = make_coordinator()

        assert not await coordinator.initialize_from_sample({})

        assert coordinator.state == MappingState.UNINITIALIZED
        assert "DIVIDENDS" not in memory_sink.headers

    @pytest.mark.asyncio
    async def test_too_deep_sample_falls_back(self, make_coordinator):
        coordinator = make_coordinator(schema=FixedSchema(["id"]))
        cyclic = {"id": 1}
        cyclic["self"] = cyclic

        assert await coordinator.initialize_from_sample(cyclic)
        assert coordinator.effective_header_names == ["Id"]


class TestInitializeFromStore:
    @pytest.mark.asyncio
    async def test_adopts_stored_mappings(self, make_coordinator, mapping_store):
        await mapping_store.merge("DIVIDENDS", ["id", "ticker"])
        await mapping_store.set_user_header("DIVIDENDS", "ticker", "Symbol")
        coordinator = make_coordinator(schema=FixedSchema(["other"]))

        assert await coordinator.initialize_from_store()

        assert coordinator.effective_header_names == ["Id", "Symbol"]

    @pytest.mark.asyncio
    async def test_seeds_store_from_fallback(self, make_coordinator, mapping_store):
        coordinator = make_coordinator(schema=Dividend)

        assert await coordinator.initialize_from_store()

        stored = await mapping_store.get_all("DIVIDENDS")
        assert [m.api_field_path for m in stored] == Dividend.declare_default_field_paths()
        assert all(m.user_defined_header == "" for m in stored)
        assert coordinator.header_set == stored

    @pytest.mark.asyncio
    async def test_fails_when_nothing_available(self, make_coordinator):
        assert not await make_coordinator().initialize_from_store()


class TestEnsureInitialized:
    @pytest.mark.asyncio
    async def test_store_first_without_touching_source(
        self, make_coordinator, mapping_store, mock_data_source
    ):
        await mapping_store.merge("DIVIDENDS", ["id"])
        coordinator = make_coordinator()

        await coordinator.ensure_initialized()

        assert coordinator.effective_header_names == ["Id"]
        mock_data_source.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_declared_schema_before_live_sample(self, make_coordinator, mock_data_source):
        coordinator = make_coordinator(schema=FixedSchema(["id"]))

        await coordinator.ensure_initialized()

        mock_data_source.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_live_sample_as_last_resort(self, make_coordinator, mock_data_source):
        mock_data_source.fetch.return_value = {"accountId": "A1", "cash": 5}
        coordinator = make_coordinator()

        await coordinator.ensure_initialized()

        mock_data_source.fetch.assert_awaited_once_with("DIVIDENDS")
        assert coordinator.effective_header_names == ["Accountid", "Cash"]

    @pytest.mark.asyncio
    async def test_raises_when_no_schema_anywhere(self, make_coordinator, mock_data_source):
        mock_data_source.fetch.side_effect = ConnectionError("offline")
        coordinator = make_coordinator()

        with pytest.raises(MappingInitializationError) as exc_info:
            await coordinator.ensure_initialized()

        assert exc_info.value.resource_id == "DIVIDENDS"
        assert coordinator.state == MappingState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_noop_once_initialized(self, make_coordinator, mapping_store):
        coordinator = make_coordinator(schema=FixedSchema(["id"]))
        await coordinator.ensure_initialized()
        await mapping_store.merge("DIVIDENDS", ["id", "ticker"])

        await coordinator.ensure_initialized()

        assert coordinator.effective_header_names == ["Id"]

    @pytest.mark.asyncio
    async def test_unreadable_store_still_initializes_from_schema(self, memory_sink):
        table = Mock(spec=MappingTable)
        table.read_all = AsyncMock(side_effect=StoreIOError("gone"))
        table.replace_all = AsyncMock()
        coordinator = ResourceMappingCoordinator(
            "DIVIDENDS", FieldMappingStore(table), memory_sink, schema=FixedSchema(["id"])
        )

        await coordinator.ensure_initialized()

        assert coordinator.effective_header_names == ["Id"]
        table.replace_all.assert_not_called()


class TestRefresh:
    @pytest.mark.asyncio
    async def test_reports_and_merges_changes(self, make_coordinator, mapping_store):
        await mapping_store.merge("DIVIDENDS", ["id", "ticker"])
        await mapping_store.set_user_header("DIVIDENDS", "id", "Transaction ID")
        coordinator = make_coordinator()

        changes = await coordinator.refresh([{"id": "x", "amount": {"value": 1}}])

        assert changes.added == ["amount.value"]
        assert changes.removed == ["ticker"]
        assert coordinator.effective_header_names == ["Transaction ID", "Ticker", "Amount Value"]

    @pytest.mark.asyncio
    async def test_empty_sample_keeps_current_schema(self, make_coordinator, mapping_store):
        await mapping_store.merge("DIVIDENDS", ["id", "ticker"])
        coordinator = make_coordinator(schema=FixedSchema(["declared"]))

        changes = await coordinator.refresh([])

        assert not changes.has_changes
        assert coordinator.effective_header_names == ["Id", "Ticker"]
        paths = [m.api_field_path for m in await mapping_store.get_all("DIVIDENDS")]
        assert "declared" not in paths
