"""Data models for the field mapping system."""

from enum import Enum

from pydantic import BaseModel, Field

MAPPING_TABLE_COLUMNS = [
    "resourceId",
    "apiFieldPath",
    "autoTransformedHeader",
    "userDefinedHeader",
]


class MappingState(str, Enum):
    """Initialization state of a resource coordinator."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


class FieldMapping(BaseModel):
    """One persisted link between an API field path and its column names."""

    resource_id: str
    api_field_path: str
    auto_transformed_header: str
    user_defined_header: str = ""

    @property
    def effective_header(self) -> str:
        """User override when set, otherwise the generated header."""
        if self.has_override:
            return self.user_defined_header.strip()
        return self.auto_transformed_header

    @property
    def has_override(self) -> bool:
        return bool((self.user_defined_header or "").strip())

    def to_row(self) -> list[str]:
        """Serialize to the four-column mapping table layout."""
        return [
            self.resource_id,
            self.api_field_path,
            self.auto_transformed_header,
            self.user_defined_header or "",
        ]

    @classmethod
    def from_row(cls, row: list) -> "FieldMapping":
        """Parse a mapping table row, padding short rows with blanks."""
        cells = ["" if v is None else str(v) for v in list(row)[:4]]
        cells += [""] * (4 - len(cells))
        return cls(
            resource_id=cells[0],
            api_field_path=cells[1],
            auto_transformed_header=cells[2],
            user_defined_header=cells[3],
        )


class HeaderDiff(BaseModel):
    """Schema change between stored paths and a fresh sample."""

    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


class StructuralError(ValueError):
    """Raised for malformed paths or nesting deeper than the recursion bound."""

    pass


class MappingInitializationError(RuntimeError):
    """Raised when neither a live sample nor a declared schema yields any field."""

    def __init__(self, resource_id: str, message: str = ""):
        self.resource_id = resource_id
        super().__init__(
            message or f"No field mappings available for resource '{resource_id}'"
        )


class StoreIOError(RuntimeError):
    """Raised by mapping table backends when the table can't be read or written."""

    pass


class MappingNotFoundError(LookupError):
    """Raised when a requested field mapping does not exist."""

    pass
