"""Pytest fixtures for storefront tests."""

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from storefront.blob_store import BlobStore
from storefront.catalog import Catalog
from storefront.data_store import DataStore
from storefront.identity import Actor, ProfileDirectory
from storefront.models import Order, OrderItem
from storefront.orders import OrderRepository


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """DataStore backed by a temporary directory."""
    return DataStore(temp_dir / "data")


@pytest.fixture
def blobs(temp_dir):
    """BlobStore backed by a temporary directory."""
    return BlobStore(temp_dir / "blobs", public_url="http://testserver/files")


@pytest.fixture
def products(store):
    """A small pickle catalog, keyed by a short name."""
    catalog = Catalog(store)
    return {
        "mango": catalog.add_product("Mango Pickle", 120, category="pickles", stock=10),
        "lemon": catalog.add_product("Lemon Pickle", 80, category="pickles", stock=5),
        "hamper": catalog.add_product("Festive Hamper", 500, category="gifts", stock=2),
        "podi": catalog.add_product("Kandi Podi", 50, category="podis"),
    }


@pytest.fixture
def customer():
    return Actor(id="user-1")


@pytest.fixture
def other_customer():
    return Actor(id="user-2")


@pytest.fixture
def admin(store):
    """A staff actor backed by a profile row."""
    ProfileDirectory(store).set_role("staff-1", "admin", email="staff@example.com")
    return Actor(id="staff-1", role="admin")


def seed_order(
    store: DataStore,
    user_id: str = "user-1",
    status: str = "pending",
    price: str = "100",
    quantity: int = 1,
    created_at: str | None = None,
    payment_method: str = "upi",
    with_items: bool = True,
) -> Order:
    """Write an order header (and items) straight to the store."""
    item = OrderItem(product_id="p-1", product_name="Mango Pickle", quantity=quantity, price=Decimal(price))
    order = Order.create(
        user_id=user_id,
        items=[item],
        shipping_address="Asha Rao\n12 Beach Road\nVizag, AP - 530001\nPhone: 9999999999",
        payment_method=payment_method,
        utr_reference="123456789012" if payment_method == "upi" else "",
    )
    order.status = status
    if created_at:
        order.created_at = created_at
        order.updated_at = created_at

    repository = OrderRepository(store)
    repository.insert_header(order)
    if with_items:
        repository.insert_items(order)
    else:
        order.items = []
    return order
