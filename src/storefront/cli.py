"""Command-line interface for storefront staff tooling."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from . import __version__
from .catalog import Catalog
from .coupons import CouponEvaluator, create_coupon
from .data_store import DataStore
from .errors import OrderNotFoundError, StorefrontError
from .expenses import ExpenseLedger
from .finance import FinanceAggregator
from .identity import Actor, ProfileDirectory
from .models import DISCOUNT_TYPES, EXPENSE_CATEGORIES, ORDER_STATUSES, ROLES
from .orders import OrderRepository
from .utils import format_expense, format_money, format_order
from .workflow import transition

# Operator commands run with staff rights
CLI_ACTOR = Actor(id="cli", role="admin")


def get_store(args: argparse.Namespace) -> DataStore:
    """Get the DataStore for --data-dir, or the configured default."""
    return DataStore(Path(args.data_dir) if args.data_dir else None)


def resolve_order_id(repository: OrderRepository, order_id: str) -> str:
    """Expand an order ID prefix to the full ID."""
    matches = [o.id for o in repository.list_orders() if o.id.startswith(order_id)]
    if len(matches) != 1:
        raise OrderNotFoundError(
            order_id if not matches else f"{order_id} (ambiguous, matches {len(matches)} orders)"
        )
    return matches[0]


def cmd_products_add(args: argparse.Namespace) -> int:
    """Add a product to the catalog."""
    try:
        product = Catalog(get_store(args)).add_product(
            name=args.name,
            price=args.price,
            description=args.description or "",
            category=args.category or "",
            image_url=args.image_url or "",
            stock=args.stock,
        )

        print(f"Added product: {product.id[:8]}")
        print(f"  Name: {product.name}")
        print(f"  Price: {format_money(product.price)}")
        if product.category:
            print(f"  Category: {product.category}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_list(args: argparse.Namespace) -> int:
    """List catalog products."""
    try:
        products = Catalog(get_store(args)).list_products(category=args.category)

        if not products:
            print("No products found.")
            return 0

        if args.json:
            print(json.dumps([p.to_dict() for p in products], indent=2))
        else:
            print(f"Products ({len(products)}):")
            print()
            for p in products:
                print(f"  {p.id[:8]}  {p.name:<30} {format_money(p.price):>8}  {p.category}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_coupons_add(args: argparse.Namespace) -> int:
    """Create a coupon."""
    try:
        coupon = create_coupon(
            get_store(args),
            code=args.code,
            discount_type=args.type,
            discount_value=args.value,
            min_order_value=args.min_order,
            expires_at=args.expires,
            is_active=not args.inactive,
        )

        print(f"Added coupon: {coupon.code}")
        if coupon.discount_type == "percentage":
            print(f"  Discount: {coupon.discount_value}%")
        else:
            print(f"  Discount: {format_money(coupon.discount_value)}")
        if coupon.min_order_value:
            print(f"  Minimum order: {format_money(coupon.min_order_value)}")
        if coupon.expires_at:
            print(f"  Expires: {coupon.expires_at}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_coupons_list(args: argparse.Namespace) -> int:
    """List coupons."""
    try:
        coupons = CouponEvaluator(get_store(args)).list_coupons()

        if not coupons:
            print("No coupons found.")
            return 0

        if args.json:
            print(json.dumps([c.to_dict() for c in coupons], indent=2))
        else:
            print(f"Coupons ({len(coupons)}):")
            print()
            for c in coupons:
                value = (
                    f"{c.discount_value}%" if c.discount_type == "percentage"
                    else format_money(c.discount_value)
                )
                state = "active" if c.is_active else "inactive"
                print(f"  {c.code:<12} {value:>8}  min {format_money(c.min_order_value)}  {state}")
                if c.expires_at:
                    print(f"               expires {c.expires_at}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_users_set_role(args: argparse.Namespace) -> int:
    """Grant or revoke staff rights."""
    try:
        profile = ProfileDirectory(get_store(args)).set_role(
            args.user_id, args.role, email=args.email or ""
        )
        print(f"User {profile.id} is now {profile.role}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_list(args: argparse.Namespace) -> int:
    """List orders, newest first."""
    try:
        orders = OrderRepository(get_store(args)).list_orders(
            user_id=args.user, status=args.status
        )

        if not orders:
            print("No orders found.")
            return 0

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2))
        else:
            print(f"Orders ({len(orders)}):")
            print()
            for order in orders:
                print(format_order(order, verbose=args.verbose))
                print()

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_transition(args: argparse.Namespace) -> int:
    """Move an order to a new status."""
    try:
        repository = OrderRepository(get_store(args))
        order_id = resolve_order_id(repository, args.order_id)
        before = repository.get_order(order_id).status
        order = transition(repository, CLI_ACTOR, order_id, args.status)

        print(f"Order {order.id[:8]}: {before} -> {order.status}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_incomplete(args: argparse.Namespace) -> int:
    """List orders that were written without items."""
    try:
        orders = OrderRepository(get_store(args)).find_incomplete()

        if not orders:
            print("No incomplete orders.")
            return 0

        print(f"Incomplete orders ({len(orders)}):")
        print()
        for order in orders:
            print(format_order(order))
            print()

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_expenses_add(args: argparse.Namespace) -> int:
    """Record an expense."""
    try:
        expense = ExpenseLedger(get_store(args)).add_expense(
            description=args.description,
            amount=args.amount,
            category=args.category,
            date=args.date,
        )

        print(f"Added expense: {expense.id[:8]}")
        print(f"  {expense.date}  {expense.category}  {format_money(expense.amount)}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_expenses_list(args: argparse.Namespace) -> int:
    """List expenses, most recent first."""
    try:
        expenses = ExpenseLedger(get_store(args)).list_expenses(category=args.category)

        if not expenses:
            print("No expenses found.")
            return 0

        if args.json:
            print(json.dumps([e.to_dict() for e in expenses], indent=2))
        else:
            total = sum((e.amount for e in expenses), 0)
            print(f"Expenses ({len(expenses)}), total {format_money(total)}:")
            print()
            for expense in expenses:
                print(format_expense(expense))

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_expenses_remove(args: argparse.Namespace) -> int:
    """Delete an expense."""
    try:
        expense = ExpenseLedger(get_store(args)).delete_expense(args.expense_id)
        print(f"Removed expense: {expense.id[:8]} ({expense.description})")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_finance(args: argparse.Namespace) -> int:
    """Show revenue, expenditure and profit."""
    try:
        summary = FinanceAggregator(get_store(args)).summary(args.period)

        if args.json:
            print(json.dumps(summary.to_dict(), indent=2))
            return 0

        print(f"Revenue:      {format_money(summary.revenue):>12}")
        print(f"Expenditure:  {format_money(summary.expenditure):>12}")
        print(f"Net profit:   {format_money(summary.net_profit):>12}")
        print()

        if summary.buckets:
            print(f"{summary.period.capitalize()} breakdown:")
            for b in summary.buckets:
                print(
                    f"  {b.key:<10}  revenue {format_money(b.revenue):>10}  "
                    f"expense {format_money(b.expense):>10}  profit {format_money(b.profit):>10}"
                )
            print()

        counts = ", ".join(f"{s}: {n}" for s, n in summary.order_counts.items())
        print(f"Orders: {counts}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        if args.data_dir:
            # A reloading server imports the app in a fresh process
            os.environ["STOREFRONT_DATA_DIR"] = str(Path(args.data_dir).resolve())

        print("Starting storefront API server...")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "storefront.api:app" if args.reload else None
        if app_target is None:
            from . import api

            if args.data_dir:
                api.configure(data_dir=Path(args.data_dir))
            app_target = api.app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Cart sessions live in process memory
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Storefront staff tooling: catalog, coupons, orders, expenses and finance.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--data-dir", help="Data directory (default: $STOREFRONT_DATA_DIR or ./data)"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Log debug output to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # products
    products_parser = subparsers.add_parser("products", help="Manage the catalog")
    products_sub = products_parser.add_subparsers(dest="products_command")

    products_add_parser = products_sub.add_parser("add", help="Add a product")
    products_add_parser.add_argument("name", help="Product name")
    products_add_parser.add_argument("price", help="Unit price")
    products_add_parser.add_argument("--category", "-c", help="Category")
    products_add_parser.add_argument("--description", "-d", help="Description")
    products_add_parser.add_argument("--image-url", help="Image URL")
    products_add_parser.add_argument(
        "--stock", type=int, default=0, help="Units in stock (default: 0)"
    )

    products_list_parser = products_sub.add_parser("list", help="List products")
    products_list_parser.add_argument("--category", "-c", help="Filter by category")
    products_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # coupons
    coupons_parser = subparsers.add_parser("coupons", help="Manage coupons")
    coupons_sub = coupons_parser.add_subparsers(dest="coupons_command")

    coupons_add_parser = coupons_sub.add_parser("add", help="Create a coupon")
    coupons_add_parser.add_argument("code", help="Coupon code (stored uppercase)")
    coupons_add_parser.add_argument(
        "--type", "-t", choices=DISCOUNT_TYPES, required=True, help="Discount type"
    )
    coupons_add_parser.add_argument(
        "--value", required=True, help="Percent for percentage coupons, amount for fixed"
    )
    coupons_add_parser.add_argument(
        "--min-order", default="0", help="Minimum subtotal (default: 0)"
    )
    coupons_add_parser.add_argument("--expires", help="Expiry timestamp (ISO 8601)")
    coupons_add_parser.add_argument(
        "--inactive", action="store_true", help="Create the coupon disabled"
    )

    coupons_list_parser = coupons_sub.add_parser("list", help="List coupons")
    coupons_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # users
    users_parser = subparsers.add_parser("users", help="Manage user roles")
    users_sub = users_parser.add_subparsers(dest="users_command")

    set_role_parser = users_sub.add_parser("set-role", help="Set a user's role")
    set_role_parser.add_argument("user_id", help="Identity ID")
    set_role_parser.add_argument("role", choices=ROLES, help="Role")
    set_role_parser.add_argument("--email", help="Email to record on the profile")

    # orders
    orders_parser = subparsers.add_parser("orders", help="Review and move orders")
    orders_sub = orders_parser.add_subparsers(dest="orders_command")

    orders_list_parser = orders_sub.add_parser("list", help="List orders")
    orders_list_parser.add_argument("--status", "-s", choices=ORDER_STATUSES, help="Filter by status")
    orders_list_parser.add_argument("--user", "-u", help="Filter by user ID")
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    orders_list_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show items, coupon and address"
    )

    transition_parser = orders_sub.add_parser("transition", help="Change an order's status")
    transition_parser.add_argument("order_id", help="Order ID (or prefix)")
    transition_parser.add_argument("status", help="Target status")

    orders_sub.add_parser("incomplete", help="List orders written without items")

    # expenses
    expenses_parser = subparsers.add_parser("expenses", help="Track expenses")
    expenses_sub = expenses_parser.add_subparsers(dest="expenses_command")

    expenses_add_parser = expenses_sub.add_parser("add", help="Record an expense")
    expenses_add_parser.add_argument("description", help="What was paid for")
    expenses_add_parser.add_argument("amount", help="Amount paid")
    expenses_add_parser.add_argument(
        "--category", "-c", choices=EXPENSE_CATEGORIES, default="other",
        help="Category (default: other)",
    )
    expenses_add_parser.add_argument("--date", help="YYYY-MM-DD (default: today)")

    expenses_list_parser = expenses_sub.add_parser("list", help="List expenses")
    expenses_list_parser.add_argument(
        "--category", "-c", choices=EXPENSE_CATEGORIES, help="Filter by category"
    )
    expenses_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    expenses_remove_parser = expenses_sub.add_parser("remove", help="Delete an expense")
    expenses_remove_parser.add_argument("expense_id", help="Expense ID (or prefix)")

    # finance
    finance_parser = subparsers.add_parser("finance", help="Revenue, expenditure and profit")
    finance_parser.add_argument(
        "--period", "-p", choices=["daily", "monthly"], default="daily",
        help="Breakdown granularity (default: daily)",
    )
    finance_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    groups = {
        "products": ("products_command", {"add": cmd_products_add, "list": cmd_products_list}),
        "coupons": ("coupons_command", {"add": cmd_coupons_add, "list": cmd_coupons_list}),
        "users": ("users_command", {"set-role": cmd_users_set_role}),
        "orders": (
            "orders_command",
            {
                "list": cmd_orders_list,
                "transition": cmd_orders_transition,
                "incomplete": cmd_orders_incomplete,
            },
        ),
        "expenses": (
            "expenses_command",
            {
                "add": cmd_expenses_add,
                "list": cmd_expenses_list,
                "remove": cmd_expenses_remove,
            },
        ),
    }

    # Handle grouped subcommands
    if args.command in groups:
        dest, handlers = groups[args.command]
        sub_command = getattr(args, dest, None)
        if not sub_command:
            parser.parse_args([args.command, "--help"])
            return 0
        return handlers[sub_command](args)

    commands = {
        "finance": cmd_finance,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
