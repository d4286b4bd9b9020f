"""Tests for invoice and label content."""

import pytest

from storefront.documents import (
    build_bulk_labels,
    build_invoice,
    build_label,
    payment_marker,
    payment_type,
)
from storefront.errors import ForbiddenError, OrderNotFoundError
from storefront.orders import OrderRepository

from .conftest import seed_order


class TestInvoice:
    def test_owner_gets_invoice(self, store, customer):
        order = OrderRepository(store).get_order(
            seed_order(store, user_id=customer.id, price="120", quantity=2).id
        )

        invoice = build_invoice(order, customer)

        assert invoice["order_id"] == order.id
        assert invoice["items"] == [
            {"product_name": "Mango Pickle", "quantity": 2, "price": "120", "line_total": "240"}
        ]
        assert invoice["subtotal"] == "240"
        assert invoice["total_amount"] == "240"
        assert invoice["merchant"] == "Vaddadi Pickles"

    def test_staff_gets_any_invoice(self, store, admin):
        order = seed_order(store, user_id="user-1")
        assert build_invoice(order, admin)["order_id"] == order.id

    def test_other_customer_sees_not_found(self, store, other_customer):
        order = seed_order(store, user_id="user-1")

        with pytest.raises(OrderNotFoundError):
            build_invoice(order, other_customer)


class TestLabels:
    @pytest.mark.parametrize(
        "status,method,marker",
        [
            ("approved", "upi", "PAID"),
            ("shipped", "upi", "PAID"),
            ("pending", "upi", "PAYMENT PENDING"),
            ("approved", "cod", "COLLECT ON DELIVERY"),
            ("rejected", "upi", "CANCELLED"),
            ("rejected", "cod", "CANCELLED"),
        ],
    )
    def test_payment_marker(self, store, status, method, marker):
        order = seed_order(store, status=status, payment_method=method)
        assert payment_marker(order) == marker

    def test_payment_type(self, store):
        assert payment_type(seed_order(store, payment_method="cod")) == "COD"
        assert payment_type(seed_order(store, payment_method="upi")) == "PREPAID"

    def test_label_content(self, store, admin):
        order = seed_order(store, status="approved", quantity=3)

        label = build_label(order, admin)

        assert label["ship_to"].startswith("Asha Rao")
        assert label["payment_type"] == "PREPAID"
        assert label["item_count"] == 3

    def test_label_staff_only(self, store, customer):
        order = seed_order(store, user_id=customer.id, status="approved")

        with pytest.raises(ForbiddenError):
            build_label(order, customer)

    def test_bulk_labels_only_approved(self, store, admin):
        approved = seed_order(store, status="approved")
        seed_order(store, status="pending")
        seed_order(store, status="shipped")

        labels = build_bulk_labels(OrderRepository(store).list_orders(), admin)

        assert [label["order_id"] for label in labels] == [approved.id]

    def test_bulk_labels_staff_only(self, store, customer):
        with pytest.raises(ForbiddenError):
            build_bulk_labels([], customer)
