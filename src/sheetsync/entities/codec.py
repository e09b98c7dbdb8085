"""Row encoding and decoding for entities against an effective header set."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, Optional, Sequence, TypeVar

import pydantic

from ..config import settings
from ..mapping.models import FieldMapping, StructuralError
from ..mapping.paths import resolve_value, set_value
from .base import Entity, ValidationError

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


@dataclass
class CellOutcome:
    """Result of encoding one field: a cell value, or the reason it failed."""

    path: str
    value: Any = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def format_ratio(value: Any) -> str:
    """Render a 0..1 ratio as a percentage string with two decimals."""
    if value is None or value == "":
        return ""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Ratio is not a number: {value!r}")
    return f"{value * 100:.2f}%"


def format_timestamp(value: Any, fmt: str) -> str:
    """Render a timestamp in UTC with the given strftime pattern."""
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise ValueError(f"Timestamp is not a datetime: {value!r}")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(fmt)


def parse_number(value: Any) -> Optional[float]:
    """Parse a cell as a float; ``"15.50%"`` becomes ``0.155``. None if unparsable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    divisor = 1.0
    if text.endswith("%"):
        text = text[:-1].strip()
        divisor = 100.0
    try:
        return float(text) / divisor
    except ValueError:
        return None


class EntityCodec(Generic[E]):
    """
    Encodes entities into rows and rows back into entities, following the
    column order of a resource's effective header set.

    Args:
        entity_type: The Entity subclass this codec handles
        timestamp_format: strftime pattern for timestamp cells
        max_depth: Path resolution depth bound
    """

    def __init__(
        self,
        entity_type: type[E],
        timestamp_format: Optional[str] = None,
        max_depth: Optional[int] = None,
    ):
        self.entity_type = entity_type
        self.timestamp_format = timestamp_format or settings.timestamp_format
        self.max_depth = max_depth or settings.max_path_depth

    def _format(self, path: str, value: Any) -> Any:
        if path in self.entity_type.RATIO_PATHS:
            return format_ratio(value)
        if path in self.entity_type.TIMESTAMP_PATHS:
            return format_timestamp(value, self.timestamp_format)
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    def encode_cells(
        self, entity: E, headers: Sequence[FieldMapping]
    ) -> list[CellOutcome]:
        """Encode each header's field on its own; a failing field never stops the rest."""
        nested = entity.to_nested()
        outcomes = []
        for header in headers:
            path = header.api_field_path
            try:
                value = self._format(path, resolve_value(nested, path, self.max_depth))
            except (StructuralError, ValueError, TypeError) as e:
                outcomes.append(CellOutcome(path=path, error=str(e)))
                continue
            outcomes.append(CellOutcome(path=path, value=value))
        return outcomes

    def encode(self, entity: E, headers: Sequence[FieldMapping]) -> list[Any]:
        """Encode an entity as a row; failed fields become empty cells."""
        outcomes = self.encode_cells(entity, headers)
        for outcome in outcomes:
            if not outcome.ok:
                logger.warning(
                    f"{self.entity_type.label()}: could not encode '{outcome.path}': {outcome.error}"
                )
        return [outcome.value for outcome in outcomes]

    def _coerce(self, path: str, cell: Any) -> Any:
        if cell is None:
            return None
        if isinstance(cell, str) and not cell.strip():
            return None
        if path in self.entity_type.NUMERIC_PATHS or path in self.entity_type.RATIO_PATHS:
            return parse_number(cell)
        if path in self.entity_type.TIMESTAMP_PATHS and isinstance(cell, str):
            try:
                parsed = datetime.strptime(cell.strip(), self.timestamp_format)
            except ValueError:
                # Left for the model to parse (ISO input) or reject
                return cell.strip()
            # Cells are written in UTC
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        return cell

    def decode(self, row: Sequence[Any], headers: Sequence[FieldMapping]) -> dict[str, Any]:
        """
        Turn a row back into the nested construction input.

        ``row[i]`` is written at ``headers[i].api_field_path``. Blank cells
        become None, numeric and ratio fields are parsed as floats.
        """
        data: dict[str, Any] = {}
        for i, header in enumerate(headers):
            cell = row[i] if i < len(row) else None
            set_value(data, header.api_field_path, self._coerce(header.api_field_path, cell))
        return data

    def build(self, data: dict[str, Any]) -> E:
        """
        Construct and validate an entity from nested input.

        Raises:
            ValidationError: If the input can't be parsed or breaks an invariant
        """
        if not isinstance(data, dict):
            raise ValidationError(self.entity_type.label(), f"Expected an object, got {type(data).__name__}")
        try:
            return self.entity_type.model_validate(data)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ValidationError(
                self.entity_type.label(), f"Invalid {location}: {first['msg']}"
            ) from e

    def from_row(self, row: Sequence[Any], headers: Sequence[FieldMapping]) -> E:
        return self.build(self.decode(row, headers))
