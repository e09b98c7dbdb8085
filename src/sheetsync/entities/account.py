"""Account snapshots."""

from typing import ClassVar, Optional

from .base import Entity


class AccountInfo(Entity):
    resource_id: ClassVar[str] = "ACCOUNT_INFO"
    sheet_name: ClassVar[str] = "AccountInfo"
    endpoint: ClassVar[Optional[str]] = "/equity/account/info"

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = (
        "accountId",
        "accountNumber",
        "currency",
        "balance",
        "equity",
        "freeMargin",
        "accountType",
        "status",
    )
    NUMERIC_PATHS: ClassVar[frozenset[str]] = frozenset({"balance", "equity", "freeMargin"})

    account_id: Optional[str] = None
    account_number: Optional[str] = None
    currency: Optional[str] = None
    balance: Optional[float] = None
    equity: Optional[float] = None
    free_margin: Optional[float] = None
    account_type: Optional[str] = None
    status: Optional[str] = None

    def validate_invariants(self) -> None:
        self._require_text(self.account_id, "Account ID")
        self._require_text(self.account_number, "Account number")
        self._require_currency(self.currency, "account currency")
        self._require_number(self.balance, "balance")
        self._require_number(self.equity, "equity")
        self._require_number(self.free_margin, "free margin")


class AccountCash(Entity):
    resource_id: ClassVar[str] = "ACCOUNT_CASH"
    sheet_name: ClassVar[str] = "AccountCash"
    endpoint: ClassVar[Optional[str]] = "/equity/account/cash"

    DEFAULT_FIELD_PATHS: ClassVar[tuple[str, ...]] = ("currency", "amount", "blockedAmount")
    NUMERIC_PATHS: ClassVar[frozenset[str]] = frozenset({"amount", "blockedAmount"})

    currency: Optional[str] = None
    amount: Optional[float] = None
    blocked_amount: Optional[float] = None

    def validate_invariants(self) -> None:
        self._require_currency(self.currency)
        self._require_number(self.amount, "amount")
        self._require_number(self.blocked_amount, "blockedAmount")
