"""Utility functions for storefront."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Expense, Order

_WHOLE = Decimal("1")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """
    Coerce a stored or user-supplied amount to Decimal.

    Floats go through str() so 0.1 stays 0.1.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Not a valid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a valid amount: {value!r}")
    return result


def round_whole(amount: Decimal) -> Decimal:
    """Round to the nearest whole currency unit, halves away from zero."""
    return amount.quantize(_WHOLE, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    """Render an amount for display, dropping a zero fractional part."""
    if amount == amount.to_integral_value():
        return f"₹{amount.quantize(_WHOLE)}"
    return f"₹{amount.quantize(Decimal('0.01'))}"


def is_payment_reference(value: str, length: int) -> bool:
    """True if value is exactly `length` ASCII digits."""
    return len(value) == length and value.isascii() and value.isdigit()


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp or a bare YYYY-MM-DD date.

    Naive values are taken as UTC.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if len(text) == 10:
        parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
    else:
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def bucket_key(value: str, period: str) -> str:
    """Truncate a timestamp to a day (YYYY-MM-DD) or month (YYYY-MM) key."""
    parsed = parse_timestamp(value).astimezone(timezone.utc)
    if period == "monthly":
        return parsed.strftime("%Y-%m")
    return parsed.strftime("%Y-%m-%d")


def format_order(order: Order, verbose: bool = False) -> str:
    """Format an order for CLI display."""
    lines = [
        f"  {order.id[:8]}  {order.status:<10} {format_money(order.total_amount):>10}  "
        f"{order.created_at[:10]}"
    ]
    lines.append(f"           user: {order.user_id}  payment: {order.payment_method}")
    if order.utr_reference:
        lines.append(f"           UTR: {order.utr_reference}")
    if verbose:
        for item in order.items:
            lines.append(
                f"           - {item.product_name} x {item.quantity} "
                f"@ {format_money(item.price)}"
            )
        if order.coupon_code:
            lines.append(
                f"           coupon: {order.coupon_code} (-{format_money(order.discount_amount)})"
            )
        first_line = order.shipping_address.splitlines()[0] if order.shipping_address else ""
        lines.append(f"           ship to: {first_line}")
    return "\n".join(lines)


def format_expense(expense: Expense) -> str:
    """Format an expense for CLI display."""
    return (
        f"  {expense.id[:8]}  {expense.date}  {expense.category:<12} "
        f"{format_money(expense.amount):>10}  {expense.description}"
    )
