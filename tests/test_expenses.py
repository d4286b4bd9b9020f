"""Tests for ExpenseLedger."""

from decimal import Decimal

import pytest

from storefront.errors import ExpenseNotFoundError, InvalidExpenseError
from storefront.expenses import ExpenseLedger


class TestExpenseLedger:
    def test_add_and_list(self, store):
        ledger = ExpenseLedger(store)
        ledger.add_expense("Mangoes, 20kg", "1200", "ingredients", date="2025-04-01")
        ledger.add_expense("Glass jars", 450, "packaging", date="2025-04-03")

        expenses = ledger.list_expenses()

        assert [e.description for e in expenses] == ["Glass jars", "Mangoes, 20kg"]
        assert expenses[1].amount == Decimal("1200")

    def test_filter_by_category(self, store):
        ledger = ExpenseLedger(store)
        ledger.add_expense("Mangoes", "1200", "ingredients")
        ledger.add_expense("Courier", "90", "shipping")

        assert [e.category for e in ledger.list_expenses(category="shipping")] == ["shipping"]

    def test_date_defaults_to_today(self, store):
        expense = ExpenseLedger(store).add_expense("Rent", "8000", "rent")

        assert len(expense.date) == 10
        assert expense.date == expense.created_at[:10]

    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({"description": "  ", "amount": "10", "category": "other"}, "description"),
            ({"description": "x", "amount": "abc", "category": "other"}, "amount"),
            ({"description": "x", "amount": "0", "category": "other"}, "amount"),
            ({"description": "x", "amount": "-5", "category": "other"}, "amount"),
            ({"description": "x", "amount": "NaN", "category": "other"}, "amount"),
            ({"description": "x", "amount": "sNaN", "category": "other"}, "amount"),
            ({"description": "x", "amount": "Infinity", "category": "other"}, "amount"),
            ({"description": "x", "amount": float("inf"), "category": "other"}, "amount"),
            ({"description": "x", "amount": "10", "category": "travel"}, "category"),
            ({"description": "x", "amount": "10", "category": "other", "date": "01/04/2025"}, "date"),
        ],
    )
    def test_validation(self, store, kwargs, field):
        with pytest.raises(InvalidExpenseError) as exc_info:
            ExpenseLedger(store).add_expense(**kwargs)

        assert exc_info.value.field == field
        assert store.select("expenses") == []

    def test_get_by_prefix(self, store):
        ledger = ExpenseLedger(store)
        expense = ledger.add_expense("Gas cylinder", "1100", "utilities")

        assert ledger.get_expense(expense.id[:8]).id == expense.id

    def test_get_not_found(self, store):
        with pytest.raises(ExpenseNotFoundError):
            ExpenseLedger(store).get_expense("nope")

    def test_ambiguous_prefix(self, store):
        ledger = ExpenseLedger(store)
        ledger.add_expense("A", "1", "other")
        ledger.add_expense("B", "2", "other")

        with pytest.raises(ExpenseNotFoundError) as exc_info:
            ledger.get_expense("")
        assert "ambiguous" in str(exc_info.value)

    def test_delete(self, store):
        ledger = ExpenseLedger(store)
        expense = ledger.add_expense("Flyers", "300", "marketing")

        removed = ledger.delete_expense(expense.id)

        assert removed.id == expense.id
        assert ledger.list_expenses() == []
