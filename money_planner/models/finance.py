"""
Core Data Models for Money Planner

These models define the strict schemas for all financial data in the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep amounts exact (Decimal, never float arithmetic)
3. Be serializable for persistence and export
4. Give the presentation layer everything it needs without recomputing

DESIGN DECISION: Transactions are frozen Pydantic models. Once recorded,
a transaction can only disappear through a full ledger reset.
"""

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class Category(str, Enum):
    """
    Transaction categories.

    DESIGN DECISION: Expenses must use one of the fixed categories so the
    breakdown stays meaningful. Income always carries the INCOME sentinel.
    """
    INCOME = "income"
    FOOD = "food"
    TRANSPORT = "transport"
    HOUSING = "housing"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    HEALTHCARE = "healthcare"
    SHOPPING = "shopping"
    OTHER = "other"

    @property
    def glyph(self) -> str:
        return CATEGORY_GLYPHS.get(self, "")

    @property
    def display_name(self) -> str:
        """Capitalized name, e.g. 'Food'."""
        return self.value.capitalize()

    @property
    def is_expense(self) -> bool:
        return self is not Category.INCOME


CATEGORY_GLYPHS: dict[Category, str] = {
    Category.FOOD: "🍕",
    Category.TRANSPORT: "🚗",
    Category.HOUSING: "🏠",
    Category.UTILITIES: "⚡",
    Category.ENTERTAINMENT: "🎮",
    Category.HEALTHCARE: "🏥",
    Category.SHOPPING: "🛍️",
    Category.OTHER: "📝",
}

EXPENSE_CATEGORIES: tuple[Category, ...] = tuple(
    category for category in Category if category.is_expense
)


class CurrencyCode(str, Enum):
    """
    Supported display currencies.

    IMPORTANT: The currency is a label only. Switching it never converts
    any stored amount.
    """
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    JPY = "JPY"
    CAD = "CAD"
    AUD = "AUD"
    INR = "INR"
    LKR = "LKR"

    @property
    def symbol(self) -> str:
        return CURRENCY_SYMBOLS[self]


CURRENCY_SYMBOLS: dict[CurrencyCode, str] = {
    CurrencyCode.USD: "$",
    CurrencyCode.EUR: "€",
    CurrencyCode.GBP: "£",
    CurrencyCode.JPY: "¥",
    CurrencyCode.CAD: "C$",
    CurrencyCode.AUD: "A$",
    CurrencyCode.INR: "₹",
    CurrencyCode.LKR: "₨",
}


class ProgressTier(str, Enum):
    """Severity bucket for budget usage, used to pick a visual treatment."""
    NORMAL = "normal"      # below 75%
    WARNING = "warning"    # 75% up to 90%
    CRITICAL = "critical"  # 90% and above


class ErrorKind(str, Enum):
    """Every recoverable failure the ledger or session can report."""
    INVALID_AMOUNT = "invalid-amount"
    MISSING_SOURCE = "missing-source"
    INVALID_CATEGORY = "invalid-category"
    NO_GOAL_PROVIDED = "no-goal-provided"
    INVALID_IMPORT_FORMAT = "invalid-import-format"
    UNSUPPORTED_CURRENCY = "unsupported-currency"
    NOTHING_TO_EXPORT = "nothing-to-export"


def format_currency(amount: Decimal, currency: CurrencyCode) -> str:
    """
    Render an amount for display: symbol + absolute value, two decimals.

    The sign is dropped on purpose; callers show +/- next to the amount.
    """
    return f"{currency.symbol}{abs(Decimal(amount)):,.2f}"


def fits_double_range(value: Decimal) -> bool:
    """
    True for zero and for any finite value an IEEE double can hold without
    becoming infinity or underflowing to zero.

    Amounts from the browser app were always doubles, so anything outside
    this range could never have been a real amount.
    """
    if not value.is_finite():
        return False
    if value == 0:
        return True
    as_double = float(value)
    return as_double != 0 and not math.isinf(as_double)


# =============================================================================
# LEDGER MODELS
# =============================================================================

class Transaction(BaseModel):
    """
    A single recorded income or expense event.

    CRITICAL: Immutable once created. The id is assigned by the ledger from
    the creation time in milliseconds and is unique within a ledger.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: int = Field(
        ...,
        ge=0,
        description="Unique, monotonically assigned identifier"
    )
    type: TransactionType = Field(
        ...,
        description="income or expense"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive magnitude, currency-agnostic"
    )
    description: str = Field(
        ...,
        description="Income source or expense label"
    )
    date: datetime = Field(
        ...,
        description="Creation instant"
    )
    category: Category = Field(
        ...,
        description="Expense category, or the income sentinel"
    )

    @model_validator(mode='after')
    def validate_category_matches_type(self) -> 'Transaction':
        """Income must carry the income category, expenses must not."""
        is_income = self.type == TransactionType.INCOME
        if is_income != (self.category == Category.INCOME):
            raise ValueError(
                f"Category '{self.category.value}' is not valid for "
                f"{self.type.value} transactions"
            )
        return self

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the balance."""
        return self.amount if self.is_income else -self.amount


class LedgerState(BaseModel):
    """
    The aggregate root: every piece of financial state.

    Only the Ledger mutates this. Everyone else works on snapshots.
    """

    current_balance: Decimal = Field(
        default=ZERO,
        description="Income minus expenses since the last reset"
    )
    monthly_income: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Sum of all income amounts"
    )
    monthly_expenses: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Sum of all expense amounts"
    )
    savings_goal: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Savings target, 0 means unset"
    )
    budget_limit: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Spending limit, 0 means unset"
    )
    transactions: list[Transaction] = Field(
        default_factory=list,
        description="Transaction history, newest first"
    )
    expenses: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Cumulative spend per expense category"
    )

    @property
    def is_empty(self) -> bool:
        return self == LedgerState()


# =============================================================================
# DERIVED METRICS
# =============================================================================

def _round_whole(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class BudgetProgress(BaseModel):
    """How much of the budget limit has been spent."""

    is_set: bool = Field(
        ...,
        description="False when no budget limit is configured"
    )
    percentage: Decimal = Field(
        default=ZERO,
        ge=0,
        le=100,
        description="Share of the budget used, capped at 100"
    )
    tier: Optional[ProgressTier] = None

    @property
    def rounded_percentage(self) -> int:
        return _round_whole(self.percentage)

    @property
    def label(self) -> str:
        if not self.is_set:
            return "Set a budget to track progress"
        return f"{self.rounded_percentage}% of budget used"


class SavingsProgress(BaseModel):
    """How close the balance is to the savings goal."""

    is_set: bool = Field(
        ...,
        description="False when no savings goal is configured"
    )
    percentage: Decimal = Field(
        default=ZERO,
        ge=0,
        le=100,
        description="Share of the goal reached, clamped to 0..100"
    )

    @property
    def rounded_percentage(self) -> int:
        return _round_whole(self.percentage)

    @property
    def label(self) -> str:
        if not self.is_set:
            return "Set a savings goal to track progress"
        return f"{self.rounded_percentage}% of goal reached"


class CategoryShare(BaseModel):
    """One line of the expense breakdown."""

    category: str
    amount: Decimal
    percentage: Decimal = Field(
        ...,
        description="Share of total expenses, one decimal place"
    )

    @property
    def glyph(self) -> str:
        try:
            return Category(self.category).glyph
        except ValueError:
            return ""


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single reason an operation was rejected."""

    kind: ErrorKind = Field(
        ...,
        description="Machine-readable error kind"
    )
    field: Optional[str] = Field(
        default=None,
        description="Input field with the issue"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class OperationResult(BaseModel):
    """
    Outcome of a ledger or session operation.

    A failed result guarantees that no state was changed.
    """

    success: bool
    transaction: Optional[Transaction] = None
    error: Optional[ValidationIssue] = None

    # Warnings don't block but should be shown
    warnings: list[str] = Field(default_factory=list)
    message: str = ""

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def ok(
        cls,
        message: str,
        transaction: Optional[Transaction] = None,
        warnings: Optional[list[str]] = None,
    ) -> 'OperationResult':
        return cls(
            success=True,
            transaction=transaction,
            warnings=warnings or [],
            message=message,
        )

    @classmethod
    def failed(cls, issue: ValidationIssue) -> 'OperationResult':
        return cls(success=False, error=issue, message=issue.message)


class ExportResult(BaseModel):
    """Rendered export content plus what a download needs."""

    success: bool
    content: str = ""
    filename: Optional[str] = None
    media_type: Optional[str] = None
    error: Optional[ValidationIssue] = None
    message: str = ""
