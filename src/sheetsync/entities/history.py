"""Historical brokerage records: dividends, transactions and orders."""

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from .base import Entity, UtcDatetime


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Money(BaseModel):
    """A ``{value, currency}`` amount as the API nests it."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    value: Optional[float] = None
    currency: Optional[str] = None


class Dividend(Entity):
    """A dividend payment received from an instrument."""

    resource_id: ClassVar[str] = "DIVIDENDS"
    sheet_name: ClassVar[str] = "Dividends"
    endpoint: ClassVar[Optional[str]] = "/history/dividends"

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = (
        "id",
        "type",
        "ticker",
        "timestamp",
        "amount.value",
        "amount.currency",
        "quantity",
        "taxAmount",
        "taxCurrency",
        "sourceTransactionId",
    )
    NUMERIC_PATHS: ClassVar[frozenset[str]] = frozenset(
        {"amount.value", "quantity", "taxAmount"}
    )
    TIMESTAMP_PATHS: ClassVar[frozenset[str]] = frozenset({"timestamp"})

    id: Optional[str] = None
    type: str = "DIVIDEND"
    ticker: Optional[str] = None
    timestamp: Optional[UtcDatetime] = None
    amount: Optional[Money] = None
    quantity: Optional[float] = None
    tax_amount: Optional[float] = None
    tax_currency: Optional[str] = None
    source_transaction_id: Optional[str] = None

    # Raw keys the API reshaping consumes or replaces
    API_ONLY_KEYS: ClassVar[frozenset[str]] = frozenset(
        {"reference", "paidOn", "amountInEuro", "amount"}
    )

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Reshape a dividend as the history endpoint returns it.

        The API reports ``reference``, ``paidOn`` and ``amountInEuro``; the
        model keys these as ``id``, ``timestamp`` and a EUR ``amount``.
        Records missing any of them, or the ticker, are skipped.
        """
        reference = raw.get("reference")
        ticker = raw.get("ticker")
        paid_on = raw.get("paidOn")
        amount = raw.get("amountInEuro")
        if not isinstance(reference, str) or not reference.strip():
            return None
        if not isinstance(ticker, str) or not ticker.strip():
            return None
        if not isinstance(paid_on, str) or not _is_number(amount):
            return None

        quantity = raw.get("quantity")
        record: dict[str, Any] = {
            "id": reference,
            "ticker": ticker,
            "timestamp": paid_on,
            "amount": {"value": amount, "currency": "EUR"},
            "quantity": quantity if _is_number(quantity) else None,
        }
        for key in ("taxAmount", "taxCurrency", "sourceTransactionId"):
            if key in raw:
                record[key] = raw[key]
        # Anything else stays visible as an extra column
        for key, value in raw.items():
            if key not in cls.API_ONLY_KEYS and key not in record:
                record[key] = value
        return record

    def validate_invariants(self) -> None:
        self._require_text(self.id, "Dividend ID")
        self._require_text(self.ticker, "Dividend ticker")
        self._require_timestamp(self.timestamp, "dividend timestamp")
        if self.amount is None:
            self._fail("Dividend amount is required.")
        self._require_positive(self.amount.value, "dividend amount value")
        self._require_currency(self.amount.currency, "dividend amount currency")
        if self.quantity is not None:
            self._require_positive(self.quantity, "dividend quantity")
        if self.tax_currency is not None:
            self._require_currency(self.tax_currency, "tax currency")
        if self.tax_amount is not None and self.tax_currency is None:
            self._fail("Tax currency must be provided if tax amount is present.")


class Transaction(Entity):
    """A cash movement: deposit, withdrawal, fee, buy or sell."""

    resource_id: ClassVar[str] = "TRANSACTIONS"
    sheet_name: ClassVar[str] = "Transactions"
    endpoint: ClassVar[Optional[str]] = "/equity/history/transactions"

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = (
        "id",
        "type",
        "timestamp",
        "amount.value",
        "amount.currency",
        "ticker",
        "quantity",
        "pricePerShare",
        "notes",
        "referenceId",
        "source",
    )
    NUMERIC_PATHS: ClassVar[frozenset[str]] = frozenset(
        {"amount.value", "quantity", "pricePerShare"}
    )
    TIMESTAMP_PATHS: ClassVar[frozenset[str]] = frozenset({"timestamp"})

    TRADE_TYPES: ClassVar[frozenset[str]] = frozenset({"BUY", "SELL"})

    id: Optional[str] = None
    type: Optional[str] = None
    timestamp: Optional[UtcDatetime] = None
    amount: Optional[Money] = None
    ticker: Optional[str] = None
    quantity: Optional[float] = None
    price_per_share: Optional[float] = None
    notes: Optional[str] = None
    reference_id: Optional[str] = None
    source: Optional[str] = None

    @field_validator("type")
    @classmethod
    def upper_type(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if isinstance(value, str) else value

    def validate_invariants(self) -> None:
        self._require_text(self.id, "Transaction ID")
        self._require_text(self.type, "Transaction type")
        self._require_timestamp(self.timestamp, "transaction timestamp")
        if self.amount is None:
            self._fail("Transaction amount is required.")
        # Fees and withdrawals may be zero or negative
        self._require_number(self.amount.value, "Transaction amount value")
        self._require_currency(self.amount.currency, "transaction amount currency")

        if self.type in self.TRADE_TYPES:
            self._require_text(self.ticker, f"Ticker for {self.type} transactions")
            self._require_positive(self.quantity, f"quantity for {self.type} transactions")
            self._require_positive(
                self.price_per_share, f"pricePerShare for {self.type} transactions"
            )


class Order(Entity):
    """A historical order."""

    resource_id: ClassVar[str] = "ORDER_HISTORY"
    sheet_name: ClassVar[str] = "OrderHistory"
    endpoint: ClassVar[Optional[str]] = "/equity/history/orders"

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = (
        "id",
        "type",
        "status",
        "ticker",
        "quantity",
        "price",
        "currency",
        "timestamp",
        "timeInForce",
        "parentId",
    )
    NUMERIC_PATHS: ClassVar[frozenset[str]] = frozenset({"quantity", "price"})
    TIMESTAMP_PATHS: ClassVar[frozenset[str]] = frozenset({"timestamp"})

    id: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    ticker: Optional[str] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    timestamp: Optional[UtcDatetime] = None
    time_in_force: Optional[str] = None
    parent_id: Optional[str] = None

    def validate_invariants(self) -> None:
        self._require_text(self.id, "Order ID")
        self._require_text(self.type, "Order type")
        self._require_text(self.status, "Order status")
        self._require_text(self.ticker, "Order ticker")
        self._require_positive(self.quantity, "quantity")
        self._require_positive(self.price, "price")
        self._require_currency(self.currency, "order currency")
        self._require_timestamp(self.timestamp, "order timestamp")
