"""Dynamic field path to column mapping for nested API records."""

from .models import (
    MAPPING_TABLE_COLUMNS,
    FieldMapping,
    HeaderDiff,
    MappingState,
    StructuralError,
    MappingInitializationError,
    StoreIOError,
    MappingNotFoundError,
)
from .paths import extract_paths, resolve_value, flatten_scalar, set_value
from .storage import MappingTable, SqliteMappingTable, SheetMappingTable, create_mapping_table
from .store import FieldMappingStore, transform_name, effective_name
from .coordinator import ResourceMappingCoordinator, DeclaresFieldPaths

__all__ = [
    "MAPPING_TABLE_COLUMNS",
    "FieldMapping",
    "HeaderDiff",
    "MappingState",
    "StructuralError",
    "MappingInitializationError",
    "StoreIOError",
    "MappingNotFoundError",
    "extract_paths",
    "resolve_value",
    "flatten_scalar",
    "set_value",
    "MappingTable",
    "SqliteMappingTable",
    "SheetMappingTable",
    "create_mapping_table",
    "FieldMappingStore",
    "transform_name",
    "effective_name",
    "ResourceMappingCoordinator",
    "DeclaresFieldPaths",
]
