"""
Ledger Engine

DESIGN DECISION: The Ledger is the single authority over financial state.
- Mutations go through record_income / record_expense / set_goals /
  reset / restore, and nothing else
- Each mutation either fully applies or returns a failed result with
  the state untouched
- Queries are pure and never mutate

The ledger knows nothing about rendering or storage. Anything that needs
to react to a change subscribes and receives a snapshot.
"""

from datetime import datetime, timezone
from decimal import (
    ROUND_HALF_UP,
    Context,
    Decimal,
    DecimalException,
    Inexact,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Any, Callable, Optional

import structlog

from money_planner.models.finance import (
    HUNDRED,
    ZERO,
    BudgetProgress,
    Category,
    CategoryShare,
    ErrorKind,
    LedgerState,
    OperationResult,
    ProgressTier,
    SavingsProgress,
    Transaction,
    TransactionType,
    ValidationIssue,
)
from money_planner.validation import EntryValidator, parse_amount


WARNING_THRESHOLD = Decimal("75")
CRITICAL_THRESHOLD = Decimal("90")
ONE_DECIMAL = Decimal("0.1")

# Wide enough for any sum of double-range amounts; a result that still
# needs rounding is refused so the totals stay exact.
TOTALS_PRECISION = 800
TOTALS_CONTEXT = Context(
    prec=TOTALS_PRECISION,
    traps=[Inexact, InvalidOperation, Overflow],
)

Listener = Callable[[LedgerState], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class Ledger:
    """
    Owns one LedgerState and every operation on it.

    GUARANTEES:
    - current_balance == monthly_income - monthly_expenses
    - monthly totals and per-category totals equal the sums over transactions
    - transactions are newest first and never edited in place
    """

    def __init__(
        self,
        state: Optional[LedgerState] = None,
        clock: Optional[Callable[[], datetime]] = None,
        validator: Optional[EntryValidator] = None,
    ):
        """
        Initialize the ledger.

        Args:
            state: State to start from. Copied, never shared.
            clock: Returns the current instant; injectable for tests.
            validator: Input validator, defaults to EntryValidator().
        """
        self._state = state.model_copy(deep=True) if state else LedgerState()
        self._clock = clock or _utcnow
        self._validator = validator or EntryValidator()
        self._listeners: list[Listener] = []
        self._last_id = self._max_transaction_id(self._state)
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Snapshots and subscribers
    # -------------------------------------------------------------------------

    def snapshot(self) -> LedgerState:
        """Deep copy of the current state, safe to hand out."""
        return self._state.model_copy(deep=True)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call `listener` with a fresh snapshot after every successful mutation.

        Returns a function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.snapshot())
            except Exception as e:
                # A broken subscriber must not undo or block the mutation
                self._logger.error(
                    "ledger_listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def record_income(self, amount: Any, source: Any) -> OperationResult:
        """
        Record an income transaction.

        The amount is checked before the source, so a bad amount is what
        gets reported when both are wrong.
        """
        parsed, issue = self._validator.check_amount(amount)
        if issue:
            return OperationResult.failed(issue)

        description, issue = self._validator.check_source(source)
        if issue:
            return OperationResult.failed(issue)

        state = self._state
        try:
            with localcontext(TOTALS_CONTEXT):
                balance = state.current_balance + parsed
                income = state.monthly_income + parsed
        except DecimalException:
            return OperationResult.failed(self._inexact_totals_issue())

        transaction = self._new_transaction(
            TransactionType.INCOME,
            parsed,
            description,
            Category.INCOME,
        )

        state.current_balance = balance
        state.monthly_income = income
        state.transactions.insert(0, transaction)

        self._notify()
        return OperationResult.ok("Income added successfully!", transaction)

    def record_expense(self, amount: Any, category: Any) -> OperationResult:
        """Record an expense in one of the fixed categories."""
        parsed, issue = self._validator.check_amount(amount)
        if issue:
            return OperationResult.failed(issue)

        expense_category, issue = self._validator.check_category(category)
        if issue:
            return OperationResult.failed(issue)

        state = self._state
        key = expense_category.value
        try:
            with localcontext(TOTALS_CONTEXT):
                balance = state.current_balance - parsed
                spent = state.monthly_expenses + parsed
                category_total = state.expenses.get(key, ZERO) + parsed
        except DecimalException:
            return OperationResult.failed(self._inexact_totals_issue())

        transaction = self._new_transaction(
            TransactionType.EXPENSE,
            parsed,
            f"{expense_category.glyph} {expense_category.display_name}",
            expense_category,
        )

        state.current_balance = balance
        state.monthly_expenses = spent
        state.expenses[key] = category_total
        state.transactions.insert(0, transaction)

        self._notify()
        return OperationResult.ok("Expense added successfully!", transaction)

    def set_goals(
        self,
        savings_goal: Any = None,
        budget_limit: Any = None,
    ) -> OperationResult:
        """
        Update the savings goal and/or budget limit.

        Each value that parses to a positive number is applied. An invalid
        value is ignored and reported as a warning; only when nothing at all
        can be applied does the call fail with no-goal-provided.
        """
        updates: dict[str, Decimal] = {}
        warnings: list[str] = []

        for field, label, value in (
            ("savings_goal", "savings goal", savings_goal),
            ("budget_limit", "budget limit", budget_limit),
        ):
            if _is_blank(value):
                continue
            parsed = parse_amount(value)
            if parsed is None:
                warnings.append(f"Ignored invalid {label}: {value!r}")
            else:
                updates[field] = parsed

        if not updates:
            return OperationResult.failed(ValidationIssue(
                kind=ErrorKind.NO_GOAL_PROVIDED,
                message="Please enter at least one goal",
            ))

        for field, parsed in updates.items():
            setattr(self._state, field, parsed)

        self._notify()
        return OperationResult.ok("Goals updated successfully!", warnings=warnings)

    def reset(self) -> OperationResult:
        """
        Wipe all financial state.

        Unconditional: asking the user for confirmation is the caller's job.
        Transaction ids keep increasing across a reset.
        """
        self._state = LedgerState()
        self._notify()
        return OperationResult.ok("All data has been reset")

    def restore(self, state: LedgerState) -> OperationResult:
        """Replace the whole state, e.g. after a load or an import."""
        self._state = state.model_copy(deep=True)
        self._last_id = max(self._last_id, self._max_transaction_id(self._state))
        self._notify()
        return OperationResult.ok("Data restored successfully!")

    @staticmethod
    def _inexact_totals_issue() -> ValidationIssue:
        return ValidationIssue(
            kind=ErrorKind.INVALID_AMOUNT,
            field="amount",
            message="This amount cannot be added to your totals exactly",
        )

    def _new_transaction(
        self,
        kind: TransactionType,
        amount: Decimal,
        description: str,
        category: Category,
    ) -> Transaction:
        now = self._clock()
        return Transaction(
            id=self._next_id(now),
            type=kind,
            amount=amount,
            description=description,
            date=now,
            category=category,
        )

    def _next_id(self, now: datetime) -> int:
        """Creation time in ms, bumped when the clock hasn't moved on."""
        self._last_id = max(int(now.timestamp() * 1000), self._last_id + 1)
        return self._last_id

    @staticmethod
    def _max_transaction_id(state: LedgerState) -> int:
        return max((t.id for t in state.transactions), default=0)

    # -------------------------------------------------------------------------
    # Derived queries
    # -------------------------------------------------------------------------

    def budget_progress(self) -> BudgetProgress:
        limit = self._state.budget_limit
        if limit <= 0:
            return BudgetProgress(is_set=False)

        percentage = min(self._state.monthly_expenses / limit * HUNDRED, HUNDRED)

        if percentage >= CRITICAL_THRESHOLD:
            tier = ProgressTier.CRITICAL
        elif percentage >= WARNING_THRESHOLD:
            tier = ProgressTier.WARNING
        else:
            tier = ProgressTier.NORMAL

        return BudgetProgress(is_set=True, percentage=percentage, tier=tier)

    def savings_progress(self) -> SavingsProgress:
        goal = self._state.savings_goal
        if goal <= 0:
            return SavingsProgress(is_set=False)

        # A negative balance counts as no savings at all
        saved = max(self._state.current_balance, ZERO)
        percentage = min(saved / goal * HUNDRED, HUNDRED)
        return SavingsProgress(is_set=True, percentage=percentage)

    def category_breakdown(self) -> list[CategoryShare]:
        """
        Per-category spend, largest first.

        Equal amounts keep the order in which the categories first appeared.
        """
        total = self._state.monthly_expenses
        ranked = sorted(
            self._state.expenses.items(),
            key=lambda item: item[1],
            reverse=True,
        )

        shares = []
        for category, amount in ranked:
            if total > 0:
                percentage = (amount / total * HUNDRED).quantize(
                    ONE_DECIMAL, rounding=ROUND_HALF_UP
                )
            else:
                percentage = ZERO
            shares.append(CategoryShare(
                category=category,
                amount=amount,
                percentage=percentage,
            ))
        return shares

    def recent_transactions(self, limit: int = 10) -> list[Transaction]:
        """The `limit` newest transactions."""
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        return list(self._state.transactions[:limit])

    def check_consistency(self) -> list[str]:
        """
        Compare the stored aggregates against the transaction history.

        Returns one message per mismatch; an empty list means consistent.
        Only restored or imported state can ever be inconsistent.
        """
        state = self._state
        with localcontext(Context(prec=TOTALS_PRECISION)):
            income = sum(
                (t.amount for t in state.transactions if t.is_income), ZERO
            )
            spent: dict[str, Decimal] = {}
            for t in state.transactions:
                if not t.is_income:
                    spent[t.category.value] = spent.get(t.category.value, ZERO) + t.amount
            expenses = sum(spent.values(), ZERO)
            net = income - expenses

        problems = []
        if state.monthly_income != income:
            problems.append(
                f"monthly_income is {state.monthly_income}, transactions sum to {income}"
            )
        if state.monthly_expenses != expenses:
            problems.append(
                f"monthly_expenses is {state.monthly_expenses}, transactions sum to {expenses}"
            )
        if state.current_balance != net:
            problems.append(
                f"current_balance is {state.current_balance}, "
                f"transactions give {net}"
            )
        for category in set(spent) | set(state.expenses):
            recorded = state.expenses.get(category, ZERO)
            actual = spent.get(category, ZERO)
            if recorded != actual:
                problems.append(
                    f"expenses[{category}] is {recorded}, transactions sum to {actual}"
                )
        return sorted(problems)
