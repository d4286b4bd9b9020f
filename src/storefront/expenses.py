"""Staff-recorded expenses."""

from datetime import date as date_type
from decimal import Decimal

from .data_store import DataStore
from .errors import ExpenseNotFoundError, InvalidExpenseError
from .models import EXPENSE_CATEGORIES, Expense, _generate_id, _utc_now
from .utils import to_money


class ExpenseLedger:
    """Create, list and delete expenses. Expenses are not tied to orders."""

    def __init__(self, store: DataStore):
        self.store = store

    def add_expense(
        self,
        description: str,
        amount: Decimal | int | str,
        category: str,
        date: str | None = None,
    ) -> Expense:
        """
        Record an expense.

        Args:
            description: What was paid for.
            amount: Positive amount.
            category: One of EXPENSE_CATEGORIES.
            date: YYYY-MM-DD, defaults to today (UTC).

        Raises:
            InvalidExpenseError: If any field fails validation.
        """
        if not description.strip():
            raise InvalidExpenseError("description", "Description is required.")

        try:
            value = to_money(amount)
        except ValueError as e:
            raise InvalidExpenseError("amount", str(e))
        if value <= 0:
            raise InvalidExpenseError("amount", "Amount must be positive.")

        if category not in EXPENSE_CATEGORIES:
            raise InvalidExpenseError(
                "category",
                f"Unknown category '{category}'. Use one of: {', '.join(EXPENSE_CATEGORIES)}",
            )

        if date is None:
            date = _utc_now()[:10]
        try:
            date_type.fromisoformat(date)
        except ValueError:
            raise InvalidExpenseError("date", f"Invalid date '{date}'. Use YYYY-MM-DD.")

        expense = Expense(
            id=_generate_id(),
            description=description.strip(),
            amount=value,
            category=category,
            date=date,
        )
        self.store.insert("expenses", expense.to_dict())
        return expense

    def list_expenses(self, category: str | None = None) -> list[Expense]:
        """List expenses, most recent date first."""
        filters = {"category": category} if category else None
        rows = self.store.select("expenses", filters)
        expenses = [Expense.from_dict(r) for r in rows]
        expenses.sort(key=lambda e: (e.date, e.created_at), reverse=True)
        return expenses

    def get_expense(self, expense_id: str) -> Expense:
        """
        Get an expense by ID (supports partial ID matching).

        Raises:
            ExpenseNotFoundError: If no expense matches, or the prefix is ambiguous.
        """
        matches = [e for e in self.list_expenses() if e.id.startswith(expense_id)]
        if not matches:
            raise ExpenseNotFoundError(expense_id)
        if len(matches) > 1:
            raise ExpenseNotFoundError(f"{expense_id} (ambiguous, matches {len(matches)} expenses)")
        return matches[0]

    def delete_expense(self, expense_id: str) -> Expense:
        """Delete an expense by ID or unique prefix."""
        expense = self.get_expense(expense_id)
        self.store.delete("expenses", expense.id)
        return expense
