"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from sheetsync.mapping import FieldMappingStore, SqliteMappingTable
from sheetsync.sheets import MemorySink
from sheetsync.source.base import DataSource


@pytest.fixture
def memory_sink() -> MemorySink:
    """An in-memory tabular sink."""
    return MemorySink()


@pytest_asyncio.fixture
async def mapping_store(tmp_path: Path) -> AsyncGenerator[FieldMappingStore, None]:
    """A field mapping store backed by a temporary SQLite file."""
    store = FieldMappingStore(SqliteMappingTable(tmp_path / "test_mappings.db"))
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def mock_data_source() -> Mock:
    """A data source returning no sample unless a test sets one."""
    source = Mock(spec=DataSource)
    source.fetch = AsyncMock(return_value=None)
    source.close = AsyncMock()
    return source


@pytest.fixture
def dividend_record() -> dict:
    """A dividend already in model shape."""
    return {
        "id": "div-1",
        "type": "DIVIDEND",
        "ticker": "AAPL_US_EQ",
        "timestamp": "2024-03-15T10:30:00",
        "amount": {"value": 1.25, "currency": "USD"},
        "quantity": 10.0,
        "taxAmount": 0.19,
        "taxCurrency": "USD",
        "sourceTransactionId": None,
    }


@pytest.fixture
def api_dividend() -> dict:
    """A dividend as the history endpoint returns it."""
    return {
        "ticker": "AAPL_US_EQ",
        "reference": "div-1",
        "quantity": 10.0,
        "amount": 1.32,
        "amountInEuro": 1.25,
        "grossAmountPerShare": 0.25,
        "paidOn": "2024-03-15T10:30:00Z",
        "type": "ORDINARY",
    }
