"""
Data Models Package

This package contains all Pydantic models used in Money Planner.
All data flowing through the system must conform to these schemas.
"""

from money_planner.models.finance import (
    CATEGORY_GLYPHS,
    CURRENCY_SYMBOLS,
    EXPENSE_CATEGORIES,
    BudgetProgress,
    Category,
    CategoryShare,
    CurrencyCode,
    ErrorKind,
    ExportResult,
    LedgerState,
    OperationResult,
    ProgressTier,
    SavingsProgress,
    Transaction,
    TransactionType,
    ValidationIssue,
    fits_double_range,
    format_currency,
)
from money_planner.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CATEGORY_GLYPHS",
    "CURRENCY_SYMBOLS",
    "EXPENSE_CATEGORIES",
    "BudgetProgress",
    "Category",
    "CategoryShare",
    "CurrencyCode",
    "ErrorKind",
    "ExportResult",
    "LedgerState",
    "OperationResult",
    "ProgressTier",
    "SavingsProgress",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "fits_double_range",
    "format_currency",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
