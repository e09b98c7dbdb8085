"""Brokerage entity types and their row codec."""

from .account import AccountCash, AccountInfo
from .base import Entity, ValidationError
from .codec import CellOutcome, EntityCodec
from .history import Dividend, Money, Order, Transaction
from .portfolio import Instrument, Pie, PieItem

ENTITY_TYPES: dict[str, type[Entity]] = {
    entity.resource_id: entity
    for entity in (
        Dividend,
        Transaction,
        Order,
        Pie,
        PieItem,
        Instrument,
        AccountInfo,
        AccountCash,
    )
}


def get_entity_type(resource_id: str) -> type[Entity]:
    """Look up an entity type by resource id (case-insensitive)."""
    try:
        return ENTITY_TYPES[resource_id.upper()]
    except KeyError:
        raise KeyError(f"Unknown resource: {resource_id}") from None


__all__ = [
    "Entity",
    "ValidationError",
    "CellOutcome",
    "EntityCodec",
    "Money",
    "Dividend",
    "Transaction",
    "Order",
    "Pie",
    "PieItem",
    "Instrument",
    "AccountInfo",
    "AccountCash",
    "ENTITY_TYPES",
    "get_entity_type",
]
