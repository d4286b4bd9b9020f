"""Invoice and shipping-label data for an order.

Only the content is produced here; page layout and printing happen in the client.
"""

from typing import Any

from . import config
from .errors import ForbiddenError, OrderNotFoundError
from .identity import Actor
from .models import Order
from .workflow import PAID_STATUSES, can_view, label_eligible


def payment_type(order: Order) -> str:
    return "COD" if order.payment_method == "cod" else "PREPAID"


def payment_marker(order: Order) -> str:
    """Payment line printed on the label."""
    if order.status == "rejected":
        return "CANCELLED"
    if order.payment_method == "cod":
        return "COLLECT ON DELIVERY"
    if order.status in PAID_STATUSES:
        return "PAID"
    return "PAYMENT PENDING"


def build_invoice(order: Order, actor: Actor | None) -> dict[str, Any]:
    """
    Invoice for the owner or staff.

    Raises:
        OrderNotFoundError: The actor may not see this order.
    """
    if not can_view(actor, order):
        # Other customers' orders look the same as missing ones
        raise OrderNotFoundError(order.id)

    return {
        "order_id": order.id,
        "created_at": order.created_at,
        "status": order.status,
        "merchant": config.PAYMENT_MERCHANT_NAME,
        "bill_to": order.shipping_address,
        "payment_method": order.payment_method,
        "utr_reference": order.utr_reference,
        "items": [
            {
                "product_name": i.product_name,
                "quantity": i.quantity,
                "price": str(i.price),
                "line_total": str(i.line_total),
            }
            for i in order.items
        ],
        "subtotal": str(order.subtotal),
        "coupon_code": order.coupon_code,
        "discount_amount": str(order.discount_amount),
        "total_amount": str(order.total_amount),
        "currency": config.CURRENCY,
    }


def build_label(order: Order, actor: Actor | None) -> dict[str, Any]:
    """
    Shipping label content. Staff only.

    Raises:
        ForbiddenError: The actor is not staff.
    """
    if actor is None or not actor.is_admin:
        raise ForbiddenError("print shipping labels")

    return {
        "order_id": order.id,
        "sender": config.PAYMENT_MERCHANT_NAME,
        "ship_to": order.shipping_address,
        "payment_type": payment_type(order),
        "payment_marker": payment_marker(order),
        "item_count": sum(i.quantity for i in order.items),
        "created_at": order.created_at,
    }


def build_bulk_labels(orders: list[Order], actor: Actor | None) -> list[dict[str, Any]]:
    """Labels for every order ready to print (status `approved`)."""
    if actor is None or not actor.is_admin:
        raise ForbiddenError("print shipping labels")
    return [build_label(o, actor) for o in label_eligible(orders)]
