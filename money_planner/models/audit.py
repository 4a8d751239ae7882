"""
Audit Models for Money Planner

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every change to the ledger
2. Debugging information when persistence or import goes wrong
3. A history the user can inspect

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger mutation and every persistence step has its own type.
    """
    # Ledger mutations
    INCOME_RECORDED = "income_recorded"
    EXPENSE_RECORDED = "expense_recorded"
    GOALS_UPDATED = "goals_updated"
    LEDGER_RESET = "ledger_reset"
    VALIDATION_FAILED = "validation_failed"

    # Persistence
    STATE_SAVED = "state_saved"
    SAVE_FAILED = "save_failed"
    STATE_LOADED = "state_loaded"
    LOAD_FAILED = "load_failed"

    # Export / import
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    IMPORT_FAILED = "import_failed"

    # Preferences
    CURRENCY_CHANGED = "currency_changed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which transaction, if any
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'ledger', 'document')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """One JSON object per line, for append-only log files."""
        return json.dumps(self.to_log_dict(), ensure_ascii=False, default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.income_recorded(transaction_id, "Salary", amount)
        event = AuditEventBuilder.save_failed("disk full")
    """

    @staticmethod
    def income_recorded(
        transaction_id: int,
        source: str,
        amount: Decimal,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_RECORDED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            description=f"Income recorded: {source}",
            details={
                "source": source,
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_recorded(
        transaction_id: int,
        category: str,
        amount: Decimal,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            description=f"Expense recorded: {category}",
            details={
                "category": category,
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def goals_updated(
        savings_goal: Decimal,
        budget_limit: Decimal,
        ignored: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOALS_UPDATED,
            entity_type="ledger",
            description="Savings goal / budget limit updated",
            details={
                "savings_goal": str(savings_goal),
                "budget_limit": str(budget_limit),
                "ignored_fields": ignored,
            },
            is_user_action=True,
        )

    @staticmethod
    def ledger_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description="All ledger data was reset",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        operation: str,
        kind: str,
        message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"{operation} rejected: {kind}",
            error_code=kind,
            error_message=message,
            details={
                "operation": operation,
            },
            is_user_action=True,
        )

    @staticmethod
    def state_saved(
        backend: str,
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="document",
            description=f"State saved to {backend}",
            details={
                "backend": backend,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def save_failed(
        backend: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="document",
            description=f"Could not save state to {backend}",
            error_message=error_message,
            details={
                "backend": backend,
            },
        )

    @staticmethod
    def state_loaded(
        backend: str,
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            entity_type="document",
            description=f"Previous data loaded from {backend}",
            details={
                "backend": backend,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def load_failed(
        backend: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="document",
            description=f"Could not load state from {backend}",
            error_message=error_message,
            details={
                "backend": backend,
            },
        )

    @staticmethod
    def data_exported(
        export_format: str,
        filename: str,
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            entity_type="document",
            description=f"Data exported as {export_format}",
            details={
                "format": export_format,
                "filename": filename,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def data_imported(
        transaction_count: int,
        currency: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            entity_type="document",
            description=f"Imported {transaction_count} transactions",
            details={
                "transaction_count": transaction_count,
                "currency": currency,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            description="Import rejected: invalid file format",
            error_code="invalid-import-format",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def currency_changed(
        previous: str,
        current: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CURRENCY_CHANGED,
            description=f"Display currency changed to {current}",
            details={
                "previous": previous,
                "current": current,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
