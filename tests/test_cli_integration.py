"""Integration tests for CLI."""

import json
import subprocess
import sys
from pathlib import Path

import pytest

from storefront.data_store import DataStore
from storefront.identity import ProfileDirectory

from .conftest import seed_order


def run_storefront(args: list[str], data_dir: Path) -> subprocess.CompletedProcess:
    """Run storefront CLI command against a data directory."""
    return subprocess.run(
        [sys.executable, "-m", "storefront.cli", "--data-dir", str(data_dir)] + args,
        capture_output=True,
        text=True,
    )


@pytest.fixture
def data_dir(temp_dir):
    return temp_dir / "data"


class TestProductsCommands:
    def test_add_and_list(self, data_dir):
        result = run_storefront(["products", "add", "Mango Pickle", "120", "-c", "pickles"], data_dir)

        assert result.returncode == 0
        assert "Added product" in result.stdout
        assert "₹120" in result.stdout

        result = run_storefront(["products", "list", "--json"], data_dir)
        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data[0]["name"] == "Mango Pickle"
        assert data[0]["price"] == "120"

    def test_invalid_price(self, data_dir):
        result = run_storefront(["products", "add", "Mango Pickle", "cheap"], data_dir)

        assert result.returncode == 1
        assert "Error:" in result.stderr

    def test_group_without_subcommand_shows_help(self, data_dir):
        result = run_storefront(["products"], data_dir)
        assert result.returncode == 0
        assert "usage" in result.stdout


class TestCouponsCommands:
    def test_add_and_list(self, data_dir):
        result = run_storefront(
            ["coupons", "add", "save20", "--type", "percentage", "--value", "20"], data_dir
        )
        assert result.returncode == 0
        assert "Added coupon: SAVE20" in result.stdout

        result = run_storefront(["coupons", "list"], data_dir)
        assert result.returncode == 0
        assert "SAVE20" in result.stdout
        assert "active" in result.stdout

    def test_duplicate(self, data_dir):
        run_storefront(["coupons", "add", "FLAT50", "--type", "fixed", "--value", "50"], data_dir)
        result = run_storefront(["coupons", "add", "flat50", "--type", "fixed", "--value", "10"], data_dir)

        assert result.returncode == 1
        assert "already exists" in result.stderr


class TestUsersCommands:
    def test_set_role(self, data_dir):
        result = run_storefront(["users", "set-role", "staff-1", "admin"], data_dir)

        assert result.returncode == 0
        assert "staff-1 is now admin" in result.stdout
        actor = ProfileDirectory(DataStore(data_dir)).resolve_actor("staff-1")
        assert actor.is_admin


class TestOrdersCommands:
    def test_list(self, data_dir):
        order = seed_order(DataStore(data_dir), status="approved")

        result = run_storefront(["orders", "list", "--status", "approved", "-v"], data_dir)

        assert result.returncode == 0
        assert order.id[:8] in result.stdout
        assert "Mango Pickle x 1" in result.stdout

    def test_list_empty(self, data_dir):
        result = run_storefront(["orders", "list"], data_dir)
        assert result.returncode == 0
        assert "No orders found." in result.stdout

    def test_transition_by_prefix(self, data_dir):
        order = seed_order(DataStore(data_dir))

        result = run_storefront(["orders", "transition", order.id[:8], "approved"], data_dir)

        assert result.returncode == 0
        assert "pending -> approved" in result.stdout

        result = run_storefront(["orders", "list", "--json"], data_dir)
        assert json.loads(result.stdout)[0]["status"] == "approved"

    def test_illegal_transition(self, data_dir):
        order = seed_order(DataStore(data_dir), status="delivered")

        result = run_storefront(["orders", "transition", order.id, "shipped"], data_dir)

        assert result.returncode == 1
        assert "Cannot move order" in result.stderr

    def test_unknown_order(self, data_dir):
        result = run_storefront(["orders", "transition", "nope", "approved"], data_dir)

        assert result.returncode == 1
        assert "Order not found" in result.stderr

    def test_incomplete(self, data_dir):
        broken = seed_order(DataStore(data_dir), with_items=False)

        result = run_storefront(["orders", "incomplete"], data_dir)

        assert result.returncode == 0
        assert broken.id[:8] in result.stdout


class TestExpensesAndFinance:
    def test_expense_lifecycle(self, data_dir):
        result = run_storefront(
            ["expenses", "add", "Glass jars", "450", "-c", "packaging", "--date", "2025-03-10"],
            data_dir,
        )
        assert result.returncode == 0
        expense_id = result.stdout.split("Added expense: ")[1].split()[0]

        result = run_storefront(["expenses", "list"], data_dir)
        assert "Glass jars" in result.stdout
        assert "₹450" in result.stdout

        result = run_storefront(["expenses", "remove", expense_id], data_dir)
        assert result.returncode == 0
        assert "Removed expense" in result.stdout

        result = run_storefront(["expenses", "list"], data_dir)
        assert "No expenses found." in result.stdout

    def test_invalid_amount(self, data_dir):
        result = run_storefront(["expenses", "add", "Jars", "-5"], data_dir)
        assert result.returncode != 0

    def test_finance_json(self, data_dir):
        seed_order(DataStore(data_dir), status="delivered", price="1000", created_at="2025-03-10T09:00:00Z")
        run_storefront(
            ["expenses", "add", "Chillies", "300", "-c", "ingredients", "--date", "2025-03-10"],
            data_dir,
        )

        result = run_storefront(["finance", "--period", "monthly", "--json"], data_dir)

        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["revenue"] == "1000"
        assert data["net_profit"] == "700"
        assert data["series"] == [
            {"key": "2025-03", "revenue": "1000", "expense": "300", "profit": "700"}
        ]

    def test_finance_text(self, data_dir):
        result = run_storefront(["finance"], data_dir)

        assert result.returncode == 0
        assert "Net profit" in result.stdout
