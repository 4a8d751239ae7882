"""
Input Validation

DESIGN DECISION: Raw user input is turned into typed values here, before
the ledger touches any state. Each check returns either the parsed value
or a ValidationIssue that says exactly what was wrong.

IMPORTANT: Validation NEVER silently fixes input. A value like "12abc"
is rejected rather than read as 12.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from money_planner.models.finance import (
    Category,
    CurrencyCode,
    ErrorKind,
    ValidationIssue,
    fits_double_range,
)


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a user-supplied amount.

    Returns a finite Decimal greater than zero, or None. Finite means
    within the range of a double, so "1e400" is as invalid as "Infinity".
    Accepts Decimal, int, float and numeric strings.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, (float, str)):
        text = str(value).strip()
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not fits_double_range(amount) or amount <= 0:
        return None
    return amount


class EntryValidator:
    """
    Validates the raw inputs of ledger operations.

    Every method returns (parsed_value, issue); exactly one of them is None.
    """

    def check_amount(
        self,
        value: Any,
        field: str = "amount",
    ) -> tuple[Optional[Decimal], Optional[ValidationIssue]]:
        amount = parse_amount(value)
        if amount is None:
            return None, ValidationIssue(
                kind=ErrorKind.INVALID_AMOUNT,
                field=field,
                message="Please enter a valid amount greater than zero",
            )
        return amount, None

    def check_source(
        self,
        value: Any,
    ) -> tuple[Optional[str], Optional[ValidationIssue]]:
        source = value.strip() if isinstance(value, str) else ""
        if not source:
            return None, ValidationIssue(
                kind=ErrorKind.MISSING_SOURCE,
                field="source",
                message="Please enter an income source",
            )
        return source, None

    def check_category(
        self,
        value: Any,
    ) -> tuple[Optional[Category], Optional[ValidationIssue]]:
        """Expense categories only; the income sentinel is rejected."""
        category = None
        if isinstance(value, Category):
            category = value
        elif isinstance(value, str):
            try:
                category = Category(value.strip().lower())
            except ValueError:
                category = None

        if category is None or not category.is_expense:
            return None, ValidationIssue(
                kind=ErrorKind.INVALID_CATEGORY,
                field="category",
                message=f"Unknown expense category: {value!r}",
            )
        return category, None

    def check_currency(
        self,
        value: Any,
    ) -> tuple[Optional[CurrencyCode], Optional[ValidationIssue]]:
        if isinstance(value, CurrencyCode):
            return value, None
        if isinstance(value, str):
            try:
                return CurrencyCode(value.strip().upper()), None
            except ValueError:
                pass
        return None, ValidationIssue(
            kind=ErrorKind.UNSUPPORTED_CURRENCY,
            field="currency",
            message=f"Unsupported currency: {value!r}",
        )
