"""
State Codec

Converts a LedgerState to and from the plain JSON document used for local
persistence, JSON export and import, and renders the CSV and
tab-separated exports.

DESIGN DECISION: Reading is defensive. Saved files from older versions,
hand-edited exports and half-written documents must still load, so every
field has a fallback. The one thing we refuse is a `transactions` field
that is not a list: there is no sensible way to read that.
"""

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import ValidationError

from money_planner.config import get_settings
from money_planner.models.finance import (
    ZERO,
    CurrencyCode,
    ErrorKind,
    LedgerState,
    Transaction,
    fits_double_range,
)


CSV_HEADERS = ("Date", "Type", "Category", "Description", "Amount", "Currency")

# Document keys for the non-negative aggregates, in model field order
NON_NEGATIVE_FIELDS = {
    "monthly_income": "monthlyIncome",
    "monthly_expenses": "monthlyExpenses",
    "savings_goal": "savingsGoal",
    "budget_limit": "budgetLimit",
}

_logger = structlog.get_logger(__name__)


class InvalidImportFormatError(Exception):
    """The document cannot be read as Money Planner data."""

    kind = ErrorKind.INVALID_IMPORT_FORMAT


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_decimal(value: Any) -> Optional[Decimal]:
    """Read a JSON-ish number (or numeric string) as a finite Decimal."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, int):
            number = Decimal(value)
        elif isinstance(value, float):
            number = Decimal(repr(value))
        elif isinstance(value, str):
            number = Decimal(value.strip())
        else:
            return None
    except InvalidOperation:
        return None
    return number if fits_double_range(number) else None


def to_json_number(value: Decimal) -> Union[int, float, str]:
    """
    Integral amounts become ints so exports read 100, not 100.0.

    A fraction no double holds exactly is written as a decimal string,
    which coerce_decimal reads back to the same value.
    """
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return plain_number(value)


def plain_number(value: Decimal) -> str:
    """Render without exponent or trailing zeros: 100, 12.5, -50."""
    if value == 0:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_export_date(moment: datetime) -> str:
    """Locale-style M/D/YYYY, in local time."""
    local = moment.astimezone() if moment.tzinfo else moment
    return f"{local.month}/{local.day}/{local.year}"


class StateCodec:
    """
    Serializes ledger state for storage and export.

    The same document is used for persistence and for JSON export;
    an export just carries exportDate/appVersion instead of lastUpdated.
    """

    def __init__(
        self,
        app_version: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._app_version = app_version or get_settings().app.app_version
        self._clock = clock or _utcnow

    # -------------------------------------------------------------------------
    # Document serialization
    # -------------------------------------------------------------------------

    def serialize(
        self,
        state: LedgerState,
        currency: CurrencyCode,
        export: bool = False,
    ) -> dict[str, Any]:
        document: dict[str, Any] = {
            "currentBalance": to_json_number(state.current_balance),
            "monthlyIncome": to_json_number(state.monthly_income),
            "monthlyExpenses": to_json_number(state.monthly_expenses),
            "savingsGoal": to_json_number(state.savings_goal),
            "budgetLimit": to_json_number(state.budget_limit),
            "transactions": [
                self._transaction_to_dict(t) for t in state.transactions
            ],
            "expenses": {
                category: to_json_number(amount)
                for category, amount in state.expenses.items()
            },
            "currentCurrency": CurrencyCode(currency).value,
        }

        stamp = self._clock().isoformat()
        if export:
            document["exportDate"] = stamp
            document["appVersion"] = self._app_version
        else:
            document["lastUpdated"] = stamp
        return document

    def _transaction_to_dict(self, transaction: Transaction) -> dict[str, Any]:
        return {
            "id": transaction.id,
            "type": transaction.type.value,
            "amount": to_json_number(transaction.amount),
            "description": transaction.description,
            "date": transaction.date.isoformat(),
            "category": transaction.category.value,
        }

    def deserialize(
        self,
        document: Any,
        require_transactions: bool = False,
    ) -> LedgerState:
        """
        Rebuild a LedgerState from a document.

        A `transactions` value of null counts as missing: an empty list for
        saved state, a rejection when `require_transactions` is set.

        Args:
            document: Parsed JSON document
            require_transactions: Reject documents without a transactions
                list (used for user imports)

        Raises:
            InvalidImportFormatError: If the document is not an object or
                its transactions field is not a list
        """
        if not isinstance(document, Mapping):
            raise InvalidImportFormatError("Document must be a JSON object")

        raw_transactions = document.get("transactions")
        if raw_transactions is None:
            if require_transactions:
                raise InvalidImportFormatError("Document has no transactions list")
            raw_transactions = []
        elif not isinstance(raw_transactions, list):
            raise InvalidImportFormatError("'transactions' must be a list")

        values: dict[str, Any] = {
            "current_balance": coerce_decimal(document.get("currentBalance")) or ZERO,
        }
        for field, key in NON_NEGATIVE_FIELDS.items():
            number = coerce_decimal(document.get(key))
            values[field] = number if number is not None and number >= 0 else ZERO

        return LedgerState(
            **values,
            transactions=self._read_transactions(raw_transactions),
            expenses=self._read_expenses(document.get("expenses")),
        )

    def _read_transactions(self, raw_transactions: list) -> list[Transaction]:
        transactions = []
        for index, raw in enumerate(raw_transactions):
            if not isinstance(raw, Mapping):
                _logger.warning("transaction_skipped", index=index, reason="not an object")
                continue

            candidate = dict(raw)
            # None fails validation below, so out-of-range amounts are skipped
            candidate["amount"] = coerce_decimal(raw.get("amount"))

            try:
                transactions.append(Transaction.model_validate(candidate))
            except ValidationError as e:
                # Skip malformed rows
                _logger.warning(
                    "transaction_skipped",
                    index=index,
                    reason=f"{e.error_count()} validation errors",
                )
        return transactions

    def _read_expenses(self, raw_expenses: Any) -> dict[str, Decimal]:
        if not isinstance(raw_expenses, Mapping):
            return {}

        expenses = {}
        for category, value in raw_expenses.items():
            amount = coerce_decimal(value)
            if amount is None or amount < 0:
                _logger.warning("expense_total_skipped", category=str(category))
                continue
            expenses[str(category)] = amount
        return expenses

    def currency_from_document(self, document: Any) -> Optional[CurrencyCode]:
        """The stored currency, or None when absent or unknown."""
        if not isinstance(document, Mapping):
            return None
        code = document.get("currentCurrency")
        if not isinstance(code, str):
            return None
        try:
            return CurrencyCode(code.strip().upper())
        except ValueError:
            _logger.warning("unknown_currency_ignored", currency=code)
            return None

    # -------------------------------------------------------------------------
    # Text formats
    # -------------------------------------------------------------------------

    def dumps(self, document: dict[str, Any]) -> str:
        """Pretty JSON, as written to export files."""
        return json.dumps(document, indent=2, ensure_ascii=False)

    def loads(self, text: Union[str, bytes]) -> Any:
        try:
            return json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidImportFormatError(f"Not valid JSON: {e}") from e

    def to_csv(self, state: LedgerState, currency: CurrencyCode) -> str:
        """Spreadsheet export: descriptions are quoted, everything else bare."""
        return self._render_rows(state, currency, ",", quote_description=True)

    def to_tab_separated(self, state: LedgerState, currency: CurrencyCode) -> str:
        """Clipboard format that pastes straight into Google Sheets."""
        return self._render_rows(state, currency, "\t", quote_description=False)

    def _render_rows(
        self,
        state: LedgerState,
        currency: CurrencyCode,
        delimiter: str,
        quote_description: bool,
    ) -> str:
        code = CurrencyCode(currency).value
        lines = [delimiter.join(CSV_HEADERS)]

        for transaction in state.transactions:
            description = transaction.description
            if quote_description:
                description = '"' + description.replace('"', '""') + '"'
            lines.append(delimiter.join([
                format_export_date(transaction.date),
                transaction.type.value,
                transaction.category.value,
                description,
                plain_number(transaction.amount),
                code,
            ]))

        lines.append("")
        lines.append("SUMMARY")
        for label, value in (
            ("Total Income", state.monthly_income),
            ("Total Expenses", state.monthly_expenses),
            ("Current Balance", state.current_balance),
            ("Savings Goal", state.savings_goal),
            ("Budget Limit", state.budget_limit),
        ):
            lines.append(f"{label}{delimiter}{plain_number(value)}")

        return "\n".join(lines)

    def export_filename(self, extension: str) -> str:
        """e.g. money-planner-2024-12-15.csv"""
        return f"money-planner-{self._clock().date().isoformat()}.{extension}"
