"""
Main Orchestrator for Money Planner

This module ties together the ledger, the codec, storage and auditing,
and defines the session-level flows:
1. Record (validate → mutate ledger → persist → audit)
2. Save / load / autosave
3. Export (JSON, CSV, tab-separated) and import

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only the ledger mutates financial state
- Persistence happens after a successful mutation and never rolls it back
- Every step is audited

The presentation layer talks to a MoneyPlanner and nothing else.
"""

import time
from decimal import Decimal
from typing import Any, Callable, Optional, Union

import structlog

from money_planner.audit import AuditLogger
from money_planner.codec import InvalidImportFormatError, StateCodec
from money_planner.config import get_settings
from money_planner.ledger import Ledger
from money_planner.models.audit import AuditEventBuilder
from money_planner.models.finance import (
    CurrencyCode,
    ErrorKind,
    ExportResult,
    LedgerState,
    OperationResult,
    ValidationIssue,
    format_currency,
)
from money_planner.services.storage import (
    DocumentStorageInterface,
    InMemoryDocumentStorage,
    JsonFileDocumentStorage,
    JsonLinesAuditStorage,
    StorageError,
)
from money_planner.validation import EntryValidator


class MoneyPlanner:
    """
    One interactive session: a ledger, its display currency and its storage.

    Flow for every mutation:
    1. Ledger validates and applies (or rejects with no change)
    2. On success the state is saved
    3. A save failure is reported as a warning, the ledger keeps the change
    """

    def __init__(
        self,
        ledger: Optional[Ledger] = None,
        storage: Optional[DocumentStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        codec: Optional[StateCodec] = None,
        currency: Optional[CurrencyCode] = None,
    ):
        settings = get_settings().app
        self._ledger = ledger or Ledger()
        self._storage = storage or InMemoryDocumentStorage()
        self._audit_logger = audit_logger or AuditLogger()
        self._codec = codec or StateCodec(app_version=settings.app_version)
        self._currency = currency or settings.default_currency
        self._validator = EntryValidator()
        self._logger = structlog.get_logger(__name__)
        self.last_save_error: Optional[str] = None

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def currency(self) -> CurrencyCode:
        return self._currency

    def snapshot(self) -> LedgerState:
        return self._ledger.snapshot()

    def format_currency(self, amount: Decimal) -> str:
        return format_currency(amount, self._currency)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_income(self, amount: Any, source: Any) -> OperationResult:
        result = self._ledger.record_income(amount, source)
        if result.success:
            self._audit_logger.log(AuditEventBuilder.income_recorded(
                transaction_id=result.transaction.id,
                source=result.transaction.description,
                amount=result.transaction.amount,
            ))
        return self._after_mutation("add_income", result)

    def add_expense(self, amount: Any, category: Any) -> OperationResult:
        result = self._ledger.record_expense(amount, category)
        if result.success:
            self._audit_logger.log(AuditEventBuilder.expense_recorded(
                transaction_id=result.transaction.id,
                category=result.transaction.category.value,
                amount=result.transaction.amount,
            ))
        return self._after_mutation("add_expense", result)

    def set_goals(
        self,
        savings_goal: Any = None,
        budget_limit: Any = None,
    ) -> OperationResult:
        result = self._ledger.set_goals(savings_goal, budget_limit)
        if result.success:
            state = self._ledger.snapshot()
            self._audit_logger.log(AuditEventBuilder.goals_updated(
                savings_goal=state.savings_goal,
                budget_limit=state.budget_limit,
                ignored=result.warnings,
            ))
        return self._after_mutation("set_goals", result)

    def reset(self) -> OperationResult:
        """
        Wipe all financial data. The display currency is kept.

        The caller must have asked the user for confirmation already.
        """
        result = self._ledger.reset()
        self._audit_logger.log(AuditEventBuilder.ledger_reset())
        return self._after_mutation("reset", result)

    def set_currency(self, code: Any) -> OperationResult:
        currency, issue = self._validator.check_currency(code)
        if issue:
            return self._after_mutation("set_currency", OperationResult.failed(issue))

        previous = self._currency
        self._currency = currency
        if previous != currency:
            self._audit_logger.log(AuditEventBuilder.currency_changed(
                previous=previous.value,
                current=currency.value,
            ))
        return self._after_mutation(
            "set_currency",
            OperationResult.ok(f"Currency set to {currency.value}"),
        )

    def _after_mutation(self, operation: str, result: OperationResult) -> OperationResult:
        """Audit a rejection, or persist a success."""
        if not result.success:
            self._audit_logger.log_validation_failed(
                operation=operation,
                kind=result.error.kind.value,
                message=result.error.message,
            )
            return result

        if not self.save():
            return result.model_copy(update={
                "warnings": result.warnings + [
                    f"Changes could not be saved: {self.last_save_error}"
                ],
            })
        return result

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self) -> bool:
        """
        Serialize the current state and hand it to storage.

        Returns False if the write failed. The in-memory ledger is never
        affected by a failed write.
        """
        state = self._ledger.snapshot()
        document = self._codec.serialize(state, self._currency)
        try:
            self._storage.store(document)
        except StorageError as e:
            self.last_save_error = str(e)
            self._audit_logger.log_save_failed(
                backend=self._storage.name,
                error_message=str(e),
            )
            return False

        self.last_save_error = None
        self._audit_logger.log(AuditEventBuilder.state_saved(
            backend=self._storage.name,
            transaction_count=len(state.transactions),
        ))
        return True

    def load(self) -> bool:
        """
        Restore the saved state, if any.

        Returns True if saved data was loaded. On any failure the current
        state is left as it is.
        """
        try:
            document = self._storage.load()
        except StorageError as e:
            self._audit_logger.log(AuditEventBuilder.load_failed(
                backend=self._storage.name,
                error_message=str(e),
            ))
            return False

        if document is None:
            return False

        try:
            state = self._codec.deserialize(document)
        except InvalidImportFormatError as e:
            self._audit_logger.log(AuditEventBuilder.load_failed(
                backend=self._storage.name,
                error_message=str(e),
            ))
            return False

        self._ledger.restore(state)
        self._currency = self._codec.currency_from_document(document) or self._currency
        self._warn_if_inconsistent("load")
        self._audit_logger.log(AuditEventBuilder.state_loaded(
            backend=self._storage.name,
            transaction_count=len(state.transactions),
        ))
        return True

    def _warn_if_inconsistent(self, source: str) -> list[str]:
        problems = self._ledger.check_consistency()
        if problems:
            self._logger.warning(
                "restored_state_inconsistent",
                source=source,
                problems=problems,
            )
        return problems

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    def export_json(self) -> ExportResult:
        state = self._ledger.snapshot()
        document = self._codec.serialize(state, self._currency, export=True)
        return self._exported(
            "json",
            self._codec.dumps(document),
            "application/json",
            len(state.transactions),
            "Budget data exported as JSON!",
        )

    def export_csv(self) -> ExportResult:
        state = self._ledger.snapshot()
        if not state.transactions:
            return self._nothing_to_export("No transactions to export")
        return self._exported(
            "csv",
            self._codec.to_csv(state, self._currency),
            "text/csv",
            len(state.transactions),
            "Budget data exported as CSV!",
        )

    def copy_for_sheets(self) -> ExportResult:
        """Tab-separated text for pasting into a spreadsheet."""
        state = self._ledger.snapshot()
        if not state.transactions:
            return self._nothing_to_export("No data to copy")
        content = self._codec.to_tab_separated(state, self._currency)
        self._audit_logger.log(AuditEventBuilder.data_exported(
            export_format="tsv",
            filename="clipboard",
            transaction_count=len(state.transactions),
        ))
        return ExportResult(
            success=True,
            content=content,
            media_type="text/tab-separated-values",
            message="Data copied! Paste in Google Sheets (Ctrl+V)",
        )

    def _exported(
        self,
        extension: str,
        content: str,
        media_type: str,
        transaction_count: int,
        message: str,
    ) -> ExportResult:
        filename = self._codec.export_filename(extension)
        self._audit_logger.log(AuditEventBuilder.data_exported(
            export_format=extension,
            filename=filename,
            transaction_count=transaction_count,
        ))
        return ExportResult(
            success=True,
            content=content,
            filename=filename,
            media_type=media_type,
            message=message,
        )

    def _nothing_to_export(self, message: str) -> ExportResult:
        return ExportResult(
            success=False,
            error=ValidationIssue(kind=ErrorKind.NOTHING_TO_EXPORT, message=message),
            message=message,
        )

    def import_json(self, text: Union[str, bytes]) -> OperationResult:
        """
        Replace the current state with an exported JSON document.

        An invalid document is rejected and the current state is untouched.
        """
        try:
            document = self._codec.loads(text)
        except InvalidImportFormatError as e:
            return self._import_failed(str(e))
        return self.import_document(document)

    def import_document(self, document: Any) -> OperationResult:
        try:
            state = self._codec.deserialize(document, require_transactions=True)
        except InvalidImportFormatError as e:
            return self._import_failed(str(e))

        self._ledger.restore(state)
        self._currency = self._codec.currency_from_document(document) or self._currency
        problems = self._warn_if_inconsistent("import")
        self._audit_logger.log(AuditEventBuilder.data_imported(
            transaction_count=len(state.transactions),
            currency=self._currency.value,
        ))

        result = OperationResult.ok(
            "Data imported successfully!",
            warnings=[f"Imported totals disagree with transactions: {p}" for p in problems],
        )
        return self._after_mutation("import", result)

    def _import_failed(self, reason: str) -> OperationResult:
        self._audit_logger.log(AuditEventBuilder.import_failed(reason))
        return OperationResult.failed(ValidationIssue(
            kind=ErrorKind.INVALID_IMPORT_FORMAT,
            message="Invalid file format",
        ))


class AutosaveTimer:
    """
    Periodic re-save, driven by the boundary layer.

    Nothing runs in the background: the UI calls tick() whenever it gets
    control (e.g. on each rerun) and a save happens once the interval
    has passed.
    """

    def __init__(
        self,
        planner: MoneyPlanner,
        interval_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._planner = planner
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else get_settings().app.autosave_interval_seconds
        )
        self._clock = clock
        self._last_run = clock()

    def tick(self) -> bool:
        """Save if the interval has elapsed. Returns True if a save was attempted."""
        now = self._clock()
        if now - self._last_run < self._interval:
            return False
        self._last_run = now
        self._planner.save()
        return True


def create_app_components(use_storage: bool = True) -> MoneyPlanner:
    """
    Factory function to create a ready-to-use planner.

    Args:
        use_storage: Whether to use the configured JSON file.
                    Set to False to keep everything in memory.

    Returns:
        A MoneyPlanner with any previously saved data loaded
    """
    logger = structlog.get_logger(__name__)
    storage: DocumentStorageInterface
    audit_logger = AuditLogger()

    if use_storage:
        try:
            storage_settings = get_settings().storage
            storage = JsonFileDocumentStorage()
            if storage_settings.audit_file:
                audit_logger = AuditLogger(JsonLinesAuditStorage(storage_settings.audit_file))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            audit_logger.log_error(type(e).__name__, str(e), {"fallback": "memory"})
            storage = InMemoryDocumentStorage()
    else:
        storage = InMemoryDocumentStorage()

    planner = MoneyPlanner(storage=storage, audit_logger=audit_logger)
    planner.load()
    return planner
