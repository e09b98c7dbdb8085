"""Tests for entity validation and the row codec."""

from datetime import datetime, timezone
from typing import ClassVar

import pytest

from sheetsync.entities import (
    ENTITY_TYPES,
    AccountCash,
    AccountInfo,
    Dividend,
    EntityCodec,
    Instrument,
    Order,
    Pie,
    PieItem,
    Transaction,
    ValidationError,
    get_entity_type,
)
from sheetsync.entities.codec import format_ratio, format_timestamp, parse_number
from sheetsync.mapping import FieldMapping, transform_name


def headers_for(resource_id, paths):
    return [
        FieldMapping(
            resource_id=resource_id, api_field_path=path, auto_transformed_header=transform_name(path)
        )
        for path in paths
    ]


class TestRegistry:
    def test_all_resources_registered(self):
        assert set(ENTITY_TYPES) == {
            "DIVIDENDS",
            "TRANSACTIONS",
            "ORDER_HISTORY",
            "PIES",
            "PIE_ITEMS",
            "INSTRUMENTS_LIST",
            "ACCOUNT_INFO",
            "ACCOUNT_CASH",
        }

    def test_lookup_is_case_insensitive(self):
        assert get_entity_type("pies") is Pie
        with pytest.raises(KeyError):
            get_entity_type("NOPE")

    @pytest.mark.parametrize("entity_type", list(ENTITY_TYPES.values()))
    def test_every_type_declares_default_paths(self, entity_type):
        paths = entity_type.declare_default_field_paths()
        assert paths
        assert len(paths) == len(set(paths))


class TestValidation:
    """Invalid entities are never constructed."""

    def test_valid_dividend(self, dividend_record):
        dividend = Dividend.model_validate(dividend_record)
        assert dividend.amount.value == 1.25
        assert dividend.tax_currency == "USD"

    @pytest.mark.parametrize(
        "change,message",
        [
            ({"id": " "}, "Dividend ID cannot be empty"),
            ({"ticker": None}, "Dividend ticker cannot be empty"),
            ({"amount": {"value": 0, "currency": "USD"}}, "Must be positive"),
            ({"amount": {"value": 1, "currency": "US"}}, "three-letter"),
            ({"quantity": -1}, "dividend quantity"),
            ({"taxCurrency": None}, "Tax currency must be provided"),
            ({"timestamp": None}, "timestamp"),
        ],
    )
    def test_dividend_invariants(self, dividend_record, change, message):
        with pytest.raises(ValidationError, match=message):
            Dividend.model_validate({**dividend_record, **change})

    def test_buy_transaction_requires_trade_fields(self):
        base = {
            "id": "t1",
            "type": "buy",
            "timestamp": "2024-01-01T00:00:00",
            "amount": {"value": -100, "currency": "EUR"},
            "ticker": "VUSA",
            "quantity": 2,
        }
        with pytest.raises(ValidationError, match="pricePerShare"):
            Transaction.model_validate(base)

        trade = Transaction.model_validate({**base, "pricePerShare": 50})
        assert trade.type == "BUY"

    def test_withdrawal_may_be_negative(self):
        withdrawal = Transaction.model_validate(
            {
                "id": "t2",
                "type": "WITHDRAWAL",
                "timestamp": "2024-01-01T00:00:00",
                "amount": {"value": -20, "currency": "EUR"},
            }
        )
        assert withdrawal.amount.value == -20

    def test_order_requires_positive_price(self):
        with pytest.raises(ValidationError, match="price"):
            Order.model_validate(
                {
                    "id": "o1",
                    "type": "MARKET",
                    "status": "FILLED",
                    "ticker": "AAPL",
                    "quantity": 1,
                    "price": 0,
                    "currency": "USD",
                    "timestamp": "2024-01-01T00:00:00",
                }
            )

    def test_pie_progress_must_be_ratio(self):
        with pytest.raises(ValidationError, match="progress"):
            Pie.model_validate({"id": 1, "name": "Core", "value": 10, "currency": "GBP", "progress": 1.5})

    def test_pie_item_shares(self):
        with pytest.raises(ValidationError, match="expectedShare"):
            PieItem.model_validate(
                {
                    "ticker": "A",
                    "expectedShare": None,
                    "currentShare": 0.1,
                    "currentValue": 1,
                    "investedValue": 1,
                    "quantity": 1,
                }
            )

    def test_instrument_and_account_types(self):
        with pytest.raises(ValidationError, match="exchange"):
            Instrument.model_validate({"ticker": "A", "name": "A Inc", "currency": "USD", "type": "STOCK"})
        with pytest.raises(ValidationError, match="free margin"):
            AccountInfo.model_validate(
                {"accountId": "1", "accountNumber": "2", "currency": "EUR", "balance": 1, "equity": 1}
            )
        cash = AccountCash.model_validate({"currency": "EUR", "amount": 10, "blockedAmount": 0})
        assert cash.blocked_amount == 0

    def test_numeric_ids_are_accepted_as_text(self):
        info = AccountInfo.model_validate(
            {
                "accountId": 12345,
                "accountNumber": "ACC",
                "currency": "EUR",
                "balance": 1,
                "equity": 1,
                "freeMargin": 1,
            }
        )
        assert info.account_id == "12345"


class TestFromApi:
    """Test reshaping raw API records before they are built."""

    def test_dividend_renames_api_fields(self, api_dividend):
        record = Dividend.from_api(api_dividend)

        assert record["id"] == "div-1"
        assert record["timestamp"] == "2024-03-15T10:30:00Z"
        assert record["amount"] == {"value": 1.25, "currency": "EUR"}
        assert record["grossAmountPerShare"] == 0.25
        assert not {"reference", "paidOn", "amountInEuro"} & set(record)

        dividend = EntityCodec(Dividend).build(record)
        assert dividend.amount.value == 1.25
        assert dividend.amount.currency == "EUR"
        assert dividend.timestamp == datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "change",
        [
            {"reference": None},
            {"reference": "  "},
            {"ticker": ""},
            {"paidOn": None},
            {"amountInEuro": "1.25"},
            {"amountInEuro": True},
        ],
    )
    def test_incomplete_dividend_is_dropped(self, api_dividend, change):
        assert Dividend.from_api({**api_dividend, **change}) is None

    def test_dividend_keeps_tax_fields(self, api_dividend):
        record = Dividend.from_api({**api_dividend, "taxAmount": 0.1, "taxCurrency": "EUR"})
        assert record["taxAmount"] == 0.1
        assert record["taxCurrency"] == "EUR"
        assert "sourceTransactionId" not in record

    def test_dividend_non_numeric_quantity_is_dropped(self, api_dividend):
        assert Dividend.from_api({**api_dividend, "quantity": "ten"})["quantity"] is None

    def test_pie_merges_summary_and_detail(self):
        record = Pie.from_api(
            {
                "id": 9,
                "cash": 3.5,
                "progress": 0.4,
                "status": "BEHIND",
                "result": {
                    "priceAvgValue": 250.0,
                    "priceAvgInvestedValue": 200.0,
                    "priceAvgResult": 50.0,
                    "priceAvgResultCoef": 0.25,
                },
                "dividendDetails": {"gained": 4.0, "inCash": 1.0, "reinvested": 3.0},
                "settings": {
                    "id": 9,
                    "name": "Growth",
                    "creationDate": "2023-01-10T09:00:00Z",
                    "endDate": "2030-01-01T00:00:00Z",
                    "icon": "Rocket",
                    "goal": 1000,
                },
                "instruments": [{"ticker": "VUSA"}],
            }
        )

        pie = EntityCodec(Pie).build(record)

        assert pie.name == "Growth"
        assert pie.currency == "USD"
        assert pie.value == 250.0
        assert pie.total_invested == 200.0
        assert pie.total_result_coef == 0.25
        assert pie.dividend_reinvested == 3.0
        assert pie.last_update_date == datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert pie.to_nested()["goal"] == 1000
        assert "settings" not in record

    def test_pie_summary_without_detail_passes_through(self):
        summary = {"id": 9, "cash": 3.5}
        assert Pie.from_api(summary) == summary

    def test_other_resources_pass_through(self):
        raw = {"currency": "EUR", "free": 10.0}
        record = AccountCash.from_api(raw)
        assert record == raw
        assert record is not raw


class TestCodec:
    """Test encode and decode against an effective header set."""

    def test_nested_representation_uses_api_names(self, dividend_record):
        nested = Dividend.model_validate(dividend_record).to_nested()
        assert nested["taxAmount"] == 0.19
        assert nested["amount"] == {"value": 1.25, "currency": "USD"}

    def test_encode_follows_header_order(self, dividend_record):
        codec = EntityCodec(Dividend)
        dividend = Dividend.model_validate(dividend_record)
        headers = headers_for("DIVIDENDS", ["amount.currency", "id", "timestamp", "sourceTransactionId"])

        assert codec.encode(dividend, headers) == ["USD", "div-1", "2024-03-15 10:30:00", ""]

    def test_ratio_fields_render_as_percent(self):
        codec = EntityCodec(Pie)
        pie = Pie.model_validate({"id": 1, "name": "Core", "value": 10, "currency": "GBP", "progress": 0.155})
        assert codec.encode(pie, headers_for("PIES", ["progress"])) == ["15.50%"]

    def test_extra_api_fields_are_encoded(self):
        codec = EntityCodec(Pie)
        pie = Pie.model_validate(
            {
                "id": 1,
                "name": "Core",
                "value": 10,
                "currency": "GBP",
                "dividendDetails": {"gained": 1.5},
                "instruments": [{"ticker": "A"}, {"ticker": "B"}],
            }
        )
        row = codec.encode(pie, headers_for("PIES", ["dividendDetails.gained", "instruments.ticker"]))
        assert row == [1.5, "A, B"]

    def test_failed_field_does_not_abort_row(self):
        codec = EntityCodec(Pie)
        pie = Pie.model_validate(
            {"id": 1, "name": "Core", "value": 10, "currency": "GBP", "createdBy": "not-a-date"}
        )

        class Weird(Pie):
            TIMESTAMP_PATHS: ClassVar[frozenset[str]] = frozenset({"createdBy"})

        outcomes = EntityCodec(Weird).encode_cells(pie, headers_for("PIES", ["id", "createdBy", "name"]))

        assert [o.ok for o in outcomes] == [True, False, True]
        assert [o.value for o in outcomes] == [1, "", "Core"]
        assert codec.encode(pie, headers_for("PIES", ["id", "name"])) == [1, "Core"]

    def test_decode_ratio_and_numbers(self):
        codec = EntityCodec(Pie)
        data = codec.decode(["42", "15.50%"], headers_for("PIES", ["id", "progress"]))
        assert data["id"] == 42
        assert data["progress"] == pytest.approx(0.155)

    def test_decode_blanks_to_none_and_nests(self):
        codec = EntityCodec(Dividend)
        data = codec.decode(
            ["d1", "", "12.5", "USD", "  "],
            headers_for("DIVIDENDS", ["id", "quantity", "amount.value", "amount.currency", "taxAmount"]),
        )
        assert data == {
            "id": "d1",
            "quantity": None,
            "amount": {"value": 12.5, "currency": "USD"},
            "taxAmount": None,
        }

    def test_decode_unparsable_number_is_none(self):
        codec = EntityCodec(AccountCash)
        data = codec.decode(["EUR", "lots"], headers_for("ACCOUNT_CASH", ["currency", "amount"]))
        assert data == {"currency": "EUR", "amount": None}

    def test_decode_short_row(self):
        codec = EntityCodec(AccountCash)
        data = codec.decode(["EUR"], headers_for("ACCOUNT_CASH", ["currency", "amount", "blockedAmount"]))
        assert data == {"currency": "EUR", "amount": None, "blockedAmount": None}

    def test_round_trip(self):
        codec = EntityCodec(Dividend)
        headers = headers_for("DIVIDENDS", Dividend.declare_default_field_paths())
        original = Dividend(
            id="d-9",
            ticker="MSFT",
            timestamp=datetime(2024, 5, 1, 8, 0, 0),
            amount={"value": 3.5, "currency": "USD"},
            quantity=4.0,
            tax_amount=0.5,
            tax_currency="USD",
        )

        restored = codec.from_row(codec.encode(original, headers), headers)

        assert restored == original

    def test_round_trip_with_ratios(self):
        codec = EntityCodec(PieItem)
        headers = headers_for("PIE_ITEMS", PieItem.declare_default_field_paths())
        original = PieItem(
            pie_id=7,
            ticker="VUSA",
            expected_share=0.25,
            current_share=0.5,
            current_value=100.0,
            invested_value=90.0,
            quantity=3.0,
            result=10.0,
            result_currency="GBP",
        )

        restored = codec.from_row(codec.encode(original, headers), headers)

        assert restored == original

    @pytest.mark.parametrize(
        "raw", ["2024-05-01T08:00:00Z", "2024-05-01T10:00:00+02:00", "2024-05-01T08:00:00"]
    )
    def test_timestamp_round_trip_keeps_instant(self, raw):
        codec = EntityCodec(Dividend)
        headers = headers_for("DIVIDENDS", ["id", "ticker", "timestamp", "amount.value", "amount.currency"])
        original = Dividend.model_validate(
            {"id": "d", "ticker": "T", "timestamp": raw, "amount": {"value": 1, "currency": "EUR"}}
        )

        row = codec.encode(original, headers)
        restored = codec.from_row(row, headers)

        assert row[2] == "2024-05-01 08:00:00"
        assert restored.timestamp == datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)
        assert restored == original

    def test_build_converts_type_errors(self):
        codec = EntityCodec(Dividend)
        with pytest.raises(ValidationError, match="timestamp"):
            codec.build({"id": "d", "ticker": "T", "timestamp": "yesterday-ish"})
        with pytest.raises(ValidationError):
            codec.build(["not", "a", "record"])


class TestFormatting:
    @pytest.mark.parametrize(
        "value,expected", [(0.155, "15.50%"), (1, "100.00%"), (None, ""), ("", "")]
    )
    def test_format_ratio(self, value, expected):
        assert format_ratio(value) == expected

    def test_format_ratio_rejects_text(self):
        with pytest.raises(ValueError):
            format_ratio("abc")

    @pytest.mark.parametrize(
        "cell,expected", [("12.5", 12.5), ("50%", 0.5), (3, 3.0), ("x", None), (True, None)]
    )
    def test_parse_number(self, cell, expected):
        assert parse_number(cell) == expected

    def test_format_timestamp_converts_to_utc(self):
        assert format_timestamp("2024-01-01T01:30:00+01:00", "%Y-%m-%d %H:%M") == "2024-01-01 00:30"
        assert format_timestamp(datetime(2024, 1, 1, 9, 0), "%H:%M") == "09:00"
