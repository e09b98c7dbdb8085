"""Base class shared by the brokerage entity types."""

from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def as_utc(value: datetime) -> datetime:
    """Naive values are taken to be UTC; aware ones are converted to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Entity timestamps are always aware and in UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class ValidationError(Exception):
    """Raised when an entity violates one of its invariants."""

    def __init__(self, entity: str, message: str):
        self.entity = entity
        super().__init__(f"{entity}: {message}")


class Entity(BaseModel):
    """
    A record of one brokerage resource.

    Field names are snake_case in Python and camelCase on the wire, so
    ``to_nested()`` yields the same shape the API returns and dot paths
    taken from a live sample resolve against it. Fields the model does not
    declare are kept as extras so every column of a live schema can be
    filled.

    Subclasses declare:
    - ``resource_id`` / ``sheet_name`` / ``endpoint``
    - ``DEFAULT_FIELD_PATHS``: minimal schema used when no sample exists
    - ``NUMERIC_PATHS`` / ``RATIO_PATHS`` / ``TIMESTAMP_PATHS``: cell typing
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    resource_id: ClassVar[str] = ""
    sheet_name: ClassVar[str] = ""
    endpoint: ClassVar[Optional[str]] = None

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = ()
    NUMERIC_PATHS: ClassVar[frozenset[str]] = frozenset()
    RATIO_PATHS: ClassVar[frozenset[str]] = frozenset()
    TIMESTAMP_PATHS: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def declare_default_field_paths(cls) -> list[str]:
        """Minimal field paths for this resource when no live sample exists."""
        return list(cls.DEFAULT_FIELD_PATHS)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Reshape a raw API record into construction input.

        Returns None when the record lacks what the resource needs, so the
        caller can skip it. Most resources already arrive in model shape.
        """
        return dict(raw)

    @classmethod
    def label(cls) -> str:
        return cls.__name__

    def to_nested(self) -> dict[str, Any]:
        """The entity as the nested API-shaped record."""
        return self.model_dump(by_alias=True)

    @model_validator(mode="after")
    def check_invariants(self):
        self.validate_invariants()
        return self

    def validate_invariants(self) -> None:
        """Raise ValidationError naming the first violated invariant."""
        pass

    # Shared checks

    def _fail(self, message: str):
        raise ValidationError(self.label(), message)

    def _require_text(self, value: Optional[str], name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            self._fail(f"{name} cannot be empty.")

    def _require_currency(self, value: Optional[str], name: str = "currency") -> None:
        if not isinstance(value, str) or len(value.strip()) != 3:
            self._fail(f"Invalid {name}: {value!r}. Must be a three-letter code.")

    def _require_number(self, value: Optional[float], name: str) -> None:
        if value is None:
            self._fail(f"{name} is required.")

    def _require_positive(self, value: Optional[float], name: str) -> None:
        if value is None or value <= 0:
            self._fail(f"Invalid {name}: {value!r}. Must be positive.")

    def _require_non_negative(self, value: Optional[float], name: str) -> None:
        if value is None or value < 0:
            self._fail(f"Invalid {name}: {value!r}. Must not be negative.")

    def _require_ratio(self, value: Optional[float], name: str) -> None:
        if value is None or not 0 <= value <= 1:
            self._fail(f"Invalid {name}: {value!r}. Must be between 0 and 1.")

    def _require_timestamp(self, value: Optional[datetime], name: str) -> None:
        if not isinstance(value, datetime):
            self._fail(f"Invalid {name}: {value!r}")
