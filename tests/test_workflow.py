"""Tests for the order lifecycle."""

import pytest

from storefront.errors import (
    ForbiddenError,
    IllegalTransitionError,
    OrderNotFoundError,
    UnknownStatusError,
)
from storefront.identity import Actor
from storefront.models import ORDER_STATUSES
from storefront.orders import OrderRepository
from storefront.workflow import (
    TERMINAL_STATUSES,
    allowed_targets,
    can_transition,
    can_view,
    is_legal,
    is_terminal,
    label_eligible,
    transition,
)

from .conftest import seed_order


class TestGraph:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "approved"),
            ("pending", "rejected"),
            ("approved", "shipped"),
            ("shipped", "delivered"),
        ],
    )
    def test_legal_edges(self, current, target):
        assert is_legal(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "shipped"),
            ("pending", "delivered"),
            ("pending", "pending"),
            ("approved", "rejected"),
            ("approved", "pending"),
            ("shipped", "approved"),
            ("delivered", "shipped"),
        ],
    )
    def test_illegal_edges(self, current, target):
        assert not is_legal(current, target)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
    @pytest.mark.parametrize("target", ORDER_STATUSES)
    def test_terminal_statuses_have_no_exits(self, terminal, target):
        assert not is_legal(terminal, target)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {"delivered", "rejected"}
        assert is_terminal("rejected")
        assert not is_terminal("shipped")

    def test_allowed_targets(self):
        assert allowed_targets("pending") == ["approved", "rejected"]
        assert allowed_targets("approved") == ["shipped"]
        assert allowed_targets("delivered") == []

    def test_unknown_status(self):
        with pytest.raises(UnknownStatusError):
            is_legal("pending", "refunded")
        with pytest.raises(UnknownStatusError):
            allowed_targets("lost")


class TestPermissions:
    def test_customer_sees_only_own_orders(self, store, customer, other_customer, admin):
        order = seed_order(store, user_id=customer.id)

        assert can_view(customer, order)
        assert not can_view(other_customer, order)
        assert can_view(admin, order)
        assert not can_view(None, order)

    def test_only_staff_can_transition(self, store, customer, admin):
        order = seed_order(store, user_id=customer.id)

        assert not can_transition(customer, order, "approved")
        assert not can_transition(None, order, "approved")
        assert can_transition(admin, order, "approved")


class TestTransition:
    def test_staff_approves(self, store, admin):
        order = seed_order(store, created_at="2025-01-01T00:00:00Z")
        repository = OrderRepository(store)

        updated = transition(repository, admin, order.id, "approved")

        assert updated.status == "approved"
        assert updated.updated_at != order.updated_at
        assert repository.get_order(order.id).status == "approved"

    def test_full_lifecycle(self, store, admin):
        order = seed_order(store)
        repository = OrderRepository(store)

        for target in ("approved", "shipped", "delivered"):
            transition(repository, admin, order.id, target)

        assert repository.get_order(order.id).status == "delivered"

    def test_customer_forbidden(self, store, customer):
        order = seed_order(store, user_id=customer.id)
        repository = OrderRepository(store)

        with pytest.raises(ForbiddenError):
            transition(repository, customer, order.id, "approved")
        assert repository.get_order(order.id).status == "pending"

    def test_illegal_transition(self, store, admin):
        order = seed_order(store, status="shipped")
        repository = OrderRepository(store)

        with pytest.raises(IllegalTransitionError) as exc_info:
            transition(repository, admin, order.id, "approved")

        assert exc_info.value.current == "shipped"
        assert exc_info.value.attempted == "approved"
        assert repository.get_order(order.id).status == "shipped"

    def test_rejected_is_final(self, store, admin):
        order = seed_order(store, status="rejected")

        with pytest.raises(IllegalTransitionError):
            transition(OrderRepository(store), admin, order.id, "approved")

    def test_unknown_order(self, store, admin):
        with pytest.raises(OrderNotFoundError):
            transition(OrderRepository(store), admin, "missing", "approved")

    def test_legacy_cancelled_reads_as_rejected(self, store, admin):
        order = seed_order(store, status="pending")
        store.update("orders", order.id, {"status": "cancelled"})
        repository = OrderRepository(store)

        assert repository.get_order(order.id).status == "rejected"
        assert [o.id for o in repository.list_orders(status="rejected")] == [order.id]
        with pytest.raises(IllegalTransitionError):
            transition(repository, admin, order.id, "approved")

    def test_staff_profile_role_is_used(self, store, admin):
        order = seed_order(store)
        impostor = Actor(id="staff-2", role="customer")

        with pytest.raises(ForbiddenError):
            transition(OrderRepository(store), impostor, order.id, "approved")


class TestLabelEligible:
    def test_only_approved_orders(self, store):
        statuses = ["pending", "approved", "shipped", "approved", "rejected", "delivered"]
        orders = [seed_order(store, status=s) for s in statuses]

        eligible = label_eligible(orders)

        assert len(eligible) == 2
        assert all(o.status == "approved" for o in eligible)
