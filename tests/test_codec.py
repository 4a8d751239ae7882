"""Tests for the state codec: documents, CSV and tab-separated exports."""

import json
import random
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from money_planner.codec import CSV_HEADERS, InvalidImportFormatError, StateCodec
from money_planner.ledger import Ledger
from money_planner.models.finance import (
    Category,
    CurrencyCode,
    LedgerState,
    Transaction,
    TransactionType,
)


NOON = datetime(2024, 12, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def codec():
    return StateCodec(app_version="1.0", clock=lambda: NOON)


@pytest.fixture
def populated_state():
    ledger = Ledger(clock=lambda: NOON)
    ledger.record_income(100, "Salary")
    ledger.record_income("12.5", "Cashback")
    ledger.record_expense(40, "food")
    ledger.record_expense("7.25", "transport")
    ledger.set_goals(1000, 200)
    return ledger.snapshot()


def simple_state() -> LedgerState:
    return LedgerState(
        current_balance=Decimal("60"),
        monthly_income=Decimal("100"),
        monthly_expenses=Decimal("40"),
        transactions=[
            Transaction(
                id=2,
                type=TransactionType.EXPENSE,
                amount=Decimal("40"),
                description="🍕 Food",
                date=NOON,
                category=Category.FOOD,
            ),
            Transaction(
                id=1,
                type=TransactionType.INCOME,
                amount=Decimal("100"),
                description="Salary",
                date=NOON,
                category=Category.INCOME,
            ),
        ],
        expenses={"food": Decimal("40")},
    )


class TestSerialize:
    """Tests for serialize."""

    def test_document_shape(self, codec, populated_state):
        document = codec.serialize(populated_state, CurrencyCode.EUR)

        assert document["currentBalance"] == 65.25
        assert document["monthlyIncome"] == 112.5
        assert document["monthlyExpenses"] == 47.25
        assert document["savingsGoal"] == 1000
        assert document["budgetLimit"] == 200
        assert document["expenses"] == {"food": 40, "transport": 7.25}
        assert document["currentCurrency"] == "EUR"
        assert document["lastUpdated"] == NOON.isoformat()
        assert "exportDate" not in document
        assert "appVersion" not in document

    def test_transaction_entries(self, codec, populated_state):
        document = codec.serialize(populated_state, CurrencyCode.USD)
        newest = document["transactions"][0]

        assert set(newest) == {"id", "type", "amount", "description", "date", "category"}
        assert newest["type"] == "expense"
        assert newest["category"] == "transport"
        assert newest["amount"] == 7.25
        assert newest["description"] == "🚗 Transport"

    def test_integral_amounts_are_ints(self, codec, populated_state):
        document = codec.serialize(populated_state, CurrencyCode.USD)
        assert isinstance(document["savingsGoal"], int)
        assert isinstance(document["transactions"][-1]["amount"], int)

    def test_export_document_has_version_tag(self, codec, populated_state):
        document = codec.serialize(populated_state, CurrencyCode.USD, export=True)

        assert document["exportDate"] == NOON.isoformat()
        assert document["appVersion"] == "1.0"
        assert "lastUpdated" not in document

    def test_document_is_json_serializable(self, codec, populated_state):
        document = codec.serialize(populated_state, CurrencyCode.INR)
        assert json.loads(codec.dumps(document)) == document


class TestDeserialize:
    """Tests for deserialize."""

    def test_round_trip(self, codec, populated_state):
        """Test serialize then deserialize gives back the same state."""
        document = codec.serialize(populated_state, CurrencyCode.USD)
        assert codec.deserialize(document) == populated_state

    def test_round_trip_through_json_text(self, codec, populated_state):
        text = codec.dumps(codec.serialize(populated_state, CurrencyCode.USD, export=True))
        assert codec.deserialize(codec.loads(text)) == populated_state

    def test_high_precision_round_trip(self, codec):
        """Test amounts a double cannot hold survive JSON text unchanged."""
        ledger = Ledger(clock=lambda: NOON)
        ledger.record_income("0.12345678901234567890", "Interest")
        ledger.record_income("1e300", "Windfall")
        ledger.record_expense("0.1", "food")
        state = ledger.snapshot()

        document = codec.serialize(state, CurrencyCode.USD)
        assert document["transactions"][2]["amount"] == "0.1234567890123456789"
        assert document["transactions"][0]["amount"] == 0.1

        text = codec.dumps(document)
        assert codec.deserialize(codec.loads(text)) == state

    @pytest.mark.parametrize("seed", range(5))
    def test_round_trip_with_generated_amounts(self, codec, seed):
        """Property-style: any state the ledger builds reads back identically."""
        rng = random.Random(seed)
        ledger = Ledger(clock=lambda: NOON)

        for _ in range(40):
            digits = rng.randint(1, 10 ** rng.randint(1, 35))
            amount = f"{digits}E-{rng.randint(0, 30)}"
            if rng.random() < 0.5:
                ledger.record_income(amount, "Income")
            else:
                ledger.record_expense(amount, rng.choice(["food", "housing", "other"]))
        ledger.set_goals(f"{rng.randint(1, 10 ** 20)}E-{rng.randint(0, 20)}", "0.3")
        state = ledger.snapshot()

        document = codec.serialize(state, CurrencyCode.USD)
        assert codec.deserialize(document) == state
        assert codec.deserialize(codec.loads(codec.dumps(document))) == state

    def test_null_transactions_read_as_empty(self, codec):
        assert codec.deserialize({"transactions": None}) == LedgerState()
        with pytest.raises(InvalidImportFormatError):
            codec.deserialize({"transactions": None}, require_transactions=True)

    def test_out_of_range_numbers_are_dropped(self, codec):
        """Test values no double can hold read as missing."""
        text = """{
            "currentBalance": "1e1000000",
            "savingsGoal": 1e400,
            "transactions": [
                {"id": 1, "type": "income", "amount": "1e1000000", "description": "x",
                 "date": "2024-12-15T12:00:00+00:00", "category": "income"},
                {"id": 2, "type": "income", "amount": 1e400, "description": "x",
                 "date": "2024-12-15T12:00:00+00:00", "category": "income"},
                {"id": 3, "type": "income", "amount": 5, "description": "ok",
                 "date": "2024-12-15T12:00:00+00:00", "category": "income"}
            ],
            "expenses": {"food": "1e-400", "other": 2}
        }"""
        state = codec.deserialize(codec.loads(text))

        assert state.current_balance == 0
        assert state.savings_goal == 0
        assert [t.id for t in state.transactions] == [3]
        assert state.expenses == {"other": Decimal("2")}

    def test_empty_document_gives_default_state(self, codec):
        assert codec.deserialize({}) == LedgerState()

    def test_malformed_fields_fall_back_to_zero(self, codec):
        state = codec.deserialize({
            "currentBalance": "abc",
            "monthlyIncome": -5,
            "monthlyExpenses": None,
            "savingsGoal": True,
            "budgetLimit": {"x": 1},
            "expenses": [1, 2],
        })
        assert state == LedgerState()

    def test_negative_balance_is_kept(self, codec):
        assert codec.deserialize({"currentBalance": -50}).current_balance == -50

    def test_numeric_strings_are_accepted(self, codec):
        state = codec.deserialize({"savingsGoal": "250.5"})
        assert state.savings_goal == Decimal("250.5")

    def test_legacy_browser_document(self, codec):
        """Test a document saved by the browser version of the app."""
        document = {
            "currentBalance": 60,
            "monthlyIncome": 100,
            "monthlyExpenses": 40,
            "savingsGoal": 0,
            "budgetLimit": 0,
            "transactions": [
                {
                    "id": 1734264000500,
                    "type": "expense",
                    "amount": 40,
                    "description": "🍕 Food",
                    "date": "2024-12-15T12:00:00.500Z",
                    "category": "food",
                },
                {
                    "id": 1734264000000,
                    "type": "income",
                    "amount": 100,
                    "description": "Salary",
                    "date": "2024-12-15T12:00:00.000Z",
                    "category": "income",
                },
            ],
            "expenses": {"food": 40},
            "currentCurrency": "LKR",
            "lastUpdated": "2024-12-15T12:01:00.000Z",
            "someFutureField": {"ignored": True},
        }
        state = codec.deserialize(document)

        assert len(state.transactions) == 2
        assert state.transactions[0].category == Category.FOOD
        assert state.transactions[1].date == NOON
        assert state.expenses == {"food": Decimal("40")}
        assert codec.currency_from_document(document) == CurrencyCode.LKR

    def test_malformed_transactions_are_skipped(self, codec):
        state = codec.deserialize({
            "transactions": [
                "not an object",
                {"id": 1, "type": "income", "amount": -3, "description": "x",
                 "date": NOON.isoformat(), "category": "income"},
                {"id": 2, "type": "transfer", "amount": 3, "description": "x",
                 "date": NOON.isoformat(), "category": "income"},
                {"id": 3, "type": "income", "amount": 3, "description": "ok",
                 "date": NOON.isoformat(), "category": "income"},
            ],
        })
        assert [t.id for t in state.transactions] == [3]

    @pytest.mark.parametrize("transactions", ["oops", {"a": 1}, 5])
    def test_non_list_transactions_are_rejected(self, codec, transactions):
        with pytest.raises(InvalidImportFormatError):
            codec.deserialize({"transactions": transactions})

    @pytest.mark.parametrize("document", [None, [], "text", 3])
    def test_non_object_document_is_rejected(self, codec, document):
        with pytest.raises(InvalidImportFormatError):
            codec.deserialize(document)

    def test_import_requires_transactions(self, codec):
        with pytest.raises(InvalidImportFormatError):
            codec.deserialize({"currentBalance": 5}, require_transactions=True)
        assert codec.deserialize({"transactions": []}, require_transactions=True) == LedgerState()

    def test_error_kind(self):
        assert InvalidImportFormatError.kind.value == "invalid-import-format"

    def test_unknown_currency(self, codec):
        assert codec.currency_from_document({"currentCurrency": "XYZ"}) is None
        assert codec.currency_from_document({"currentCurrency": "gbp"}) == CurrencyCode.GBP
        assert codec.currency_from_document({}) is None
        assert codec.currency_from_document("nope") is None


class TestTextExports:
    """Tests for CSV and tab-separated exports."""

    def test_csv(self, codec):
        expected = "\n".join([
            "Date,Type,Category,Description,Amount,Currency",
            '12/15/2024,expense,food,"🍕 Food",40,USD',
            '12/15/2024,income,income,"Salary",100,USD',
            "",
            "SUMMARY",
            "Total Income,100",
            "Total Expenses,40",
            "Current Balance,60",
            "Savings Goal,0",
            "Budget Limit,0",
        ])
        assert codec.to_csv(simple_state(), CurrencyCode.USD) == expected

    def test_tab_separated(self, codec):
        lines = codec.to_tab_separated(simple_state(), CurrencyCode.GBP).split("\n")

        assert lines[0] == "\t".join(CSV_HEADERS)
        assert lines[1] == "12/15/2024\texpense\tfood\t🍕 Food\t40\tGBP"
        assert lines[3] == ""
        assert lines[4] == "SUMMARY"
        assert lines[7] == "Current Balance\t60"
        assert len(lines) == 10

    def test_csv_escapes_quotes_in_description(self, codec):
        state = LedgerState(transactions=[Transaction(
            id=1,
            type=TransactionType.INCOME,
            amount=Decimal("12.50"),
            description='The "big" gig, part 2',
            date=NOON,
            category=Category.INCOME,
        )])
        row = codec.to_csv(state, CurrencyCode.USD).split("\n")[1]
        assert row == '12/15/2024,income,income,"The ""big"" gig, part 2",12.5,USD'

    def test_csv_amounts_keep_full_precision(self, codec):
        state = LedgerState(transactions=[Transaction(
            id=1,
            type=TransactionType.INCOME,
            amount=Decimal("0.123456789012345678901234567890"),
            description="Interest",
            date=NOON,
            category=Category.INCOME,
        )])
        row = codec.to_csv(state, CurrencyCode.USD).split("\n")[1]
        assert row.endswith(",0.12345678901234567890123456789,USD")

    def test_negative_balance_in_summary(self, codec):
        state = LedgerState(current_balance=Decimal("-50.00"))
        assert "Current Balance,-50" in codec.to_csv(state, CurrencyCode.USD)

    def test_empty_state_still_renders_summary(self, codec):
        lines = codec.to_csv(LedgerState(), CurrencyCode.USD).split("\n")
        assert lines[0] == ",".join(CSV_HEADERS)
        assert lines[1] == ""
        assert lines[2] == "SUMMARY"


class TestJsonText:
    """Tests for dumps/loads and file names."""

    def test_loads_rejects_invalid_json(self, codec):
        with pytest.raises(InvalidImportFormatError):
            codec.loads("{not json")

    def test_dumps_keeps_unicode(self, codec):
        assert "🍕" in codec.dumps({"d": "🍕"})

    def test_export_filename(self, codec):
        assert codec.export_filename("csv") == "money-planner-2024-12-15.csv"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
