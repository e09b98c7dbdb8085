"""Portfolio records: pies, their holdings and tradable instruments."""

from typing import Any, ClassVar, Optional

from .base import Entity, UtcDatetime


class Pie(Entity):
    """An investment pie with its performance summary."""

    resource_id: ClassVar[str] = "PIES"
    sheet_name: ClassVar[str] = "Pies"
    endpoint: ClassVar[Optional[str]] = "/equity/pies"

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = (
        "id",
        "name",
        "value",
        "currency",
        "progress",
        "creationDate",
        "lastUpdateDate",
        "icon",
        "cash",
        "dividendGained",
        "dividendInCash",
        "dividendReinvested",
        "totalInvested",
        "totalResult",
        "totalResultCoef",
        "status",
    )
    NUMERIC_PATHS: ClassVar[frozenset[str]] = frozenset(
        {
            "id",
            "value",
            "cash",
            "dividendGained",
            "dividendInCash",
            "dividendReinvested",
            "totalInvested",
            "totalResult",
            "totalResultCoef",
        }
    )
    RATIO_PATHS: ClassVar[frozenset[str]] = frozenset({"progress"})
    TIMESTAMP_PATHS: ClassVar[frozenset[str]] = frozenset({"creationDate", "lastUpdateDate"})

    id: Optional[int] = None
    name: Optional[str] = None
    value: Optional[float] = None
    currency: Optional[str] = None
    progress: Optional[float] = None
    creation_date: Optional[UtcDatetime] = None
    last_update_date: Optional[UtcDatetime] = None
    icon: Optional[str] = None
    cash: Optional[float] = None
    dividend_gained: Optional[float] = None
    dividend_in_cash: Optional[float] = None
    dividend_reinvested: Optional[float] = None
    total_invested: Optional[float] = None
    total_result: Optional[float] = None
    total_result_coef: Optional[float] = None
    status: Optional[str] = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Merge a pie summary with its detail.

        The data source attaches the detail's ``settings`` and
        ``instruments`` to each summary. Summaries without a detail pass
        through unchanged.
        """
        settings = raw.get("settings")
        if not isinstance(settings, dict):
            return dict(raw)
        result = raw.get("result") or {}
        dividends = raw.get("dividendDetails") or {}
        return {
            "id": settings.get("id", raw.get("id")),
            "name": settings.get("name"),
            "value": result.get("priceAvgValue", 0),
            "currency": settings.get("currencyCode") or "USD",
            "progress": raw.get("progress"),
            "creationDate": settings.get("creationDate"),
            "lastUpdateDate": settings.get("endDate"),
            "icon": settings.get("icon"),
            "cash": raw.get("cash"),
            "dividendGained": dividends.get("gained"),
            "dividendInCash": dividends.get("inCash"),
            "dividendReinvested": dividends.get("reinvested"),
            "totalInvested": result.get("priceAvgInvestedValue"),
            "totalResult": result.get("priceAvgResult"),
            "totalResultCoef": result.get("priceAvgResultCoef"),
            "status": raw.get("status"),
            "dividendCashAction": settings.get("dividendCashAction"),
            "goal": settings.get("goal"),
            "initialInvestment": settings.get("initialInvestment"),
            "publicUrl": settings.get("publicUrl"),
            "instruments": raw.get("instruments") or [],
        }

    def validate_invariants(self) -> None:
        self._require_positive(self.id, "pie ID")
        self._require_text(self.name, "Pie name")
        self._require_non_negative(self.value, "pie value")
        self._require_currency(self.currency)
        if self.progress is not None:
            self._require_ratio(self.progress, "progress")


class PieItem(Entity):
    """One instrument held inside a pie."""

    resource_id: ClassVar[str] = "PIE_ITEMS"
    sheet_name: ClassVar[str] = "PieItems"
    # Items come from each pie's detail endpoint
    endpoint: ClassVar[Optional[str]] = None

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = (
        "pieId",
        "id",
        "ticker",
        "expectedShare",
        "currentShare",
        "currentValue",
        "investedValue",
        "quantity",
        "result",
        "resultCurrency",
    )
    NUMERIC_PATHS: ClassVar[frozenset[str]] = frozenset(
        {"id", "pieId", "currentValue", "investedValue", "quantity", "result"}
    )
    RATIO_PATHS: ClassVar[frozenset[str]] = frozenset({"expectedShare", "currentShare"})

    pie_id: Optional[int] = None
    id: Optional[int] = None
    ticker: Optional[str] = None
    expected_share: Optional[float] = None
    current_share: Optional[float] = None
    current_value: Optional[float] = None
    invested_value: Optional[float] = None
    quantity: Optional[float] = None
    result: Optional[float] = None
    result_currency: Optional[str] = None

    def validate_invariants(self) -> None:
        self._require_text(self.ticker, "Pie item ticker")
        self._require_ratio(self.expected_share, "expectedShare")
        self._require_ratio(self.current_share, "currentShare")
        self._require_non_negative(self.current_value, "currentValue")
        self._require_non_negative(self.invested_value, "investedValue")
        self._require_non_negative(self.quantity, "quantity")
        if self.id is not None:
            self._require_positive(self.id, "pie item ID")
        if self.pie_id is not None:
            self._require_positive(self.pie_id, "parent pie ID")
        if self.result_currency is not None:
            self._require_currency(self.result_currency, "result currency")


class Instrument(Entity):
    """A tradable instrument from the instrument list."""

    resource_id: ClassVar[str] = "INSTRUMENTS_LIST"
    sheet_name: ClassVar[str] = "InstrumentsList"
    endpoint: ClassVar[Optional[str]] = "/equity/metadata/instruments"

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = (
        "ticker",
        "name",
        "currency",
        "exchange",
        "type",
        "isin",
        "country",
    )

    ticker: Optional[str] = None
    name: Optional[str] = None
    currency: Optional[str] = None
    exchange: Optional[str] = None
    type: Optional[str] = None
    isin: Optional[str] = None
    country: Optional[str] = None

    def validate_invariants(self) -> None:
        self._require_text(self.ticker, "Instrument ticker")
        self._require_text(self.name, "Instrument name")
        self._require_currency(self.currency, "instrument currency")
        self._require_text(self.exchange, "Instrument exchange")
        self._require_text(self.type, "Instrument type")
