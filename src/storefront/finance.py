"""Revenue, expenditure and profit reporting.

Revenue is recognised only for orders staff have verified (approved, shipped,
delivered). Pending orders are unverified and rejected orders never completed,
so both count for nothing. Expenses are counted in full, whatever state the
orders are in.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from . import config
from .data_store import DataStore
from .errors import InvalidPeriodError
from .expenses import ExpenseLedger
from .models import EXPENSE_CATEGORIES, ORDER_STATUSES, Expense, Order
from .orders import OrderRepository
from .utils import bucket_key
from .workflow import PAID_STATUSES

REVENUE_STATUSES = PAID_STATUSES

PERIOD_WINDOWS = {
    "daily": config.DAILY_WINDOW,
    "monthly": config.MONTHLY_WINDOW,
}

_ZERO = Decimal("0")


@dataclass
class Bucket:
    """Totals for one day or month."""

    key: str
    revenue: Decimal = _ZERO
    expense: Decimal = _ZERO

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.expense

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "revenue": str(self.revenue),
            "expense": str(self.expense),
            "profit": str(self.profit),
        }


def earns_revenue(order: Order) -> bool:
    return order.status in REVENUE_STATUSES


def revenue(orders: Iterable[Order]) -> Decimal:
    return sum((o.total_amount for o in orders if earns_revenue(o)), _ZERO)


def expenditure(expenses: Iterable[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), _ZERO)


def net_profit(orders: Iterable[Order], expenses: Iterable[Expense]) -> Decimal:
    """Revenue minus expenditure. May be negative."""
    return revenue(orders) - expenditure(expenses)


def series(
    orders: Iterable[Order],
    expenses: Iterable[Expense],
    period: str = "daily",
) -> list[Bucket]:
    """
    Bucket revenue and expenses by day or month.

    Only keys that have at least one record appear. Buckets are sorted
    ascending and cut to the most recent window (30 days or 12 months).
    """
    if period not in PERIOD_WINDOWS:
        raise InvalidPeriodError(period)

    buckets: dict[str, Bucket] = {}

    def bucket(key: str) -> Bucket:
        if key not in buckets:
            buckets[key] = Bucket(key=key)
        return buckets[key]

    for order in orders:
        if earns_revenue(order):
            b = bucket(bucket_key(order.created_at, period))
            b.revenue += order.total_amount

    for expense in expenses:
        b = bucket(bucket_key(expense.date, period))
        b.expense += expense.amount

    ordered = [buckets[k] for k in sorted(buckets)]
    return ordered[-PERIOD_WINDOWS[period]:]


def expenses_by_category(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Expense totals per category, every category present (zero if unused)."""
    totals = {c: _ZERO for c in EXPENSE_CATEGORIES}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, _ZERO) + expense.amount
    return totals


def status_counts(orders: Iterable[Order]) -> dict[str, int]:
    counts = {s: 0 for s in ORDER_STATUSES}
    for order in orders:
        counts[order.status] = counts.get(order.status, 0) + 1
    return counts


@dataclass
class FinanceSummary:
    """Totals plus the bucketed series for one period granularity."""

    period: str
    revenue: Decimal
    expenditure: Decimal
    buckets: list[Bucket] = field(default_factory=list)
    by_category: dict[str, Decimal] = field(default_factory=dict)
    order_counts: dict[str, int] = field(default_factory=dict)

    @property
    def net_profit(self) -> Decimal:
        return self.revenue - self.expenditure

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "revenue": str(self.revenue),
            "expenditure": str(self.expenditure),
            "net_profit": str(self.net_profit),
            "series": [b.to_dict() for b in self.buckets],
            "by_category": {k: str(v) for k, v in self.by_category.items()},
            "order_counts": self.order_counts,
        }


class FinanceAggregator:
    """Builds reports from the orders and expenses tables."""

    def __init__(self, store: DataStore):
        self.orders = OrderRepository(store)
        self.expenses = ExpenseLedger(store)

    def summary(self, period: str = "daily") -> FinanceSummary:
        if period not in PERIOD_WINDOWS:
            raise InvalidPeriodError(period)

        orders = self.orders.list_orders()
        expenses = self.expenses.list_expenses()

        return FinanceSummary(
            period=period,
            revenue=revenue(orders),
            expenditure=expenditure(expenses),
            buckets=series(orders, expenses, period),
            by_category=expenses_by_category(expenses),
            order_counts=status_counts(orders),
        )
