"""Tests for OrderBoard."""

import pytest

from storefront.errors import IllegalTransitionError, NotAuthenticatedError, UnknownStatusError
from storefront.order_board import OrderBoard

from .conftest import seed_order


class TestOrderBoard:
    def test_requires_actor(self, store):
        with pytest.raises(NotAuthenticatedError):
            OrderBoard(store, None)

    def test_unknown_status_filter(self, store, admin):
        with pytest.raises(UnknownStatusError):
            OrderBoard(store, admin, status="bogus")

    def test_staff_see_all_orders(self, store, admin):
        seed_order(store, user_id="user-1")
        seed_order(store, user_id="user-2")

        with OrderBoard(store, admin) as board:
            assert len(board.orders) == 2

    def test_customer_sees_own_orders(self, store, customer):
        mine = seed_order(store, user_id=customer.id)
        seed_order(store, user_id="user-2")

        with OrderBoard(store, customer) as board:
            assert [o.id for o in board.orders] == [mine.id]

    def test_newest_first(self, store, admin):
        old = seed_order(store, created_at="2025-01-01T00:00:00Z")
        new = seed_order(store, created_at="2025-02-01T00:00:00Z")

        with OrderBoard(store, admin) as board:
            assert [o.id for o in board.orders] == [new.id, old.id]

    def test_status_filter(self, store, admin):
        seed_order(store, status="pending")
        approved = seed_order(store, status="approved")

        with OrderBoard(store, admin, status="approved") as board:
            assert [o.id for o in board.orders] == [approved.id]

    def test_refreshes_on_new_order(self, store, admin):
        with OrderBoard(store, admin) as board:
            assert board.orders == []
            order = seed_order(store)
            assert [o.id for o in board.orders] == [order.id]

    def test_customer_board_ignores_other_users(self, store, customer):
        with OrderBoard(store, customer) as board:
            refreshes = []
            original = board.refresh

            def counting_refresh():
                refreshes.append(1)
                return original()

            board.refresh = counting_refresh
            seed_order(store, user_id="user-2")

            assert refreshes == []
            assert board.orders == []

    def test_close_stops_following(self, store, admin):
        board = OrderBoard(store, admin).open()
        board.close()
        seed_order(store)

        assert board.orders == []

    def test_set_status_updates_local_list(self, store, admin):
        order = seed_order(store)

        with OrderBoard(store, admin) as board:
            board.set_status(order.id, "approved")
            assert board.get(order.id).status == "approved"

    def test_set_status_drops_order_outside_filter(self, store, admin):
        order = seed_order(store)

        with OrderBoard(store, admin, status="pending") as board:
            board.set_status(order.id, "rejected")
            assert board.get(order.id) is None

    def test_failed_transition_keeps_list(self, store, admin):
        order = seed_order(store, status="delivered")

        with OrderBoard(store, admin) as board:
            with pytest.raises(IllegalTransitionError):
                board.set_status(order.id, "pending")
            assert board.get(order.id).status == "delivered"

    def test_label_queue(self, store, admin):
        seed_order(store, status="pending")
        approved = seed_order(store, status="approved")

        with OrderBoard(store, admin) as board:
            assert [o.id for o in board.label_queue()] == [approved.id]
