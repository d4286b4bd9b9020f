"""Data models for storefront."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
import uuid

from .utils import to_money

ORDER_STATUSES = ("pending", "approved", "shipped", "delivered", "rejected")
PAYMENT_METHODS = ("upi", "cod")
DISCOUNT_TYPES = ("percentage", "fixed")
ROLES = ("admin", "customer")
EXPENSE_CATEGORIES = (
    "ingredients",
    "packaging",
    "shipping",
    "marketing",
    "salaries",
    "rent",
    "utilities",
    "other",
)

# Older rows used "cancelled" for what is now "rejected"
_LEGACY_STATUSES = {"cancelled": "rejected"}


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new row ID."""
    return str(uuid.uuid4())


def normalize_status(status: str) -> str:
    return _LEGACY_STATUSES.get(status, status)


@dataclass
class Product:
    """A catalog product. Read-only from the order core's perspective."""

    id: str
    name: str
    price: Decimal
    description: str = ""
    category: str = ""
    image_url: str = ""
    stock: int = 0  # informational only

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "category": self.category,
            "image_url": self.image_url,
            "stock": self.stock,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=data["id"],
            name=data["name"],
            price=to_money(data["price"]),
            description=data.get("description", ""),
            category=data.get("category", ""),
            image_url=data.get("image_url", ""),
            stock=int(data.get("stock", 0)),
        )

    @classmethod
    def create(
        cls,
        name: str,
        price: Decimal | int | str,
        description: str = "",
        category: str = "",
        image_url: str = "",
        stock: int = 0,
    ) -> "Product":
        """Create a new product with a generated ID."""
        return cls(
            id=_generate_id(),
            name=name,
            price=to_money(price),
            description=description,
            category=category,
            image_url=image_url,
            stock=stock,
        )


@dataclass
class CartItem:
    """A product snapshot plus the quantity in the cart."""

    product: Product
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "line_total": str(self.line_total),
        }


@dataclass
class Address:
    """A saved delivery address."""

    id: str
    user_id: str
    full_name: str
    phone: str
    line1: str
    city: str
    state: str
    pincode: str
    line2: str = ""
    alt_phone: str | None = None
    is_default: bool = False
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "user_id": self.user_id,
            "full_name": self.full_name,
            "phone": self.phone,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "is_default": self.is_default,
            "created_at": self.created_at,
        }
        if self.alt_phone is not None:
            result["alt_phone"] = self.alt_phone
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Address":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            full_name=data["full_name"],
            phone=data["phone"],
            line1=data["line1"],
            line2=data.get("line2", ""),
            city=data["city"],
            state=data["state"],
            pincode=data["pincode"],
            alt_phone=data.get("alt_phone"),
            is_default=data.get("is_default", False),
            created_at=data.get("created_at", ""),
        )


@dataclass
class Coupon:
    """A discount code. Managed outside checkout; evaluated, never mutated."""

    code: str
    discount_type: str  # "percentage" | "fixed"
    discount_value: Decimal
    min_order_value: Decimal = Decimal("0")
    is_active: bool = True
    expires_at: str | None = None  # ISO 8601
    id: str = field(default_factory=_generate_id)
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "code": self.code,
            "discount_type": self.discount_type,
            "discount_value": str(self.discount_value),
            "min_order_value": str(self.min_order_value),
            "is_active": self.is_active,
            "created_at": self.created_at,
        }
        if self.expires_at is not None:
            result["expires_at"] = self.expires_at
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Coupon":
        return cls(
            id=data["id"],
            code=data["code"],
            discount_type=data["discount_type"],
            discount_value=to_money(data["discount_value"]),
            min_order_value=to_money(data.get("min_order_value", 0)),
            is_active=data.get("is_active", True),
            expires_at=data.get("expires_at"),
            created_at=data.get("created_at", ""),
        )


@dataclass
class OrderItem:
    """A purchased line. Name and price are frozen at submission."""

    product_id: str
    product_name: str
    quantity: int
    price: Decimal  # unit price at time of purchase

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": str(self.price),
        }

    def to_row(self, order_id: str) -> dict[str, Any]:
        """Row for the order_items table."""
        row = self.to_dict()
        row["order_id"] = order_id
        return row

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=data["product_id"],
            product_name=data.get("product_name", ""),
            quantity=int(data["quantity"]),
            price=to_money(data["price"]),
        )

    @classmethod
    def from_cart_item(cls, item: CartItem) -> "OrderItem":
        return cls(
            product_id=item.product.id,
            product_name=item.product.name,
            quantity=item.quantity,
            price=item.product.price,
        )


@dataclass
class Order:
    """A submitted order. Mutated only through status transitions."""

    id: str
    user_id: str
    total_amount: Decimal
    shipping_address: str  # text snapshot, not a reference
    status: str = "pending"
    payment_method: str = "upi"
    utr_reference: str = ""
    payment_screenshot_url: str | None = None
    coupon_code: str | None = None
    discount_amount: Decimal = Decimal("0")
    items: list[OrderItem] = field(default_factory=list)
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    def header_dict(self) -> dict[str, Any]:
        """Row for the orders table (items live in order_items)."""
        result: dict[str, Any] = {
            "id": self.id,
            "user_id": self.user_id,
            "total_amount": str(self.total_amount),
            "status": self.status,
            "payment_method": self.payment_method,
            "shipping_address": self.shipping_address,
            "utr_reference": self.utr_reference,
            "discount_amount": str(self.discount_amount),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.payment_screenshot_url is not None:
            result["payment_screenshot_url"] = self.payment_screenshot_url
        if self.coupon_code is not None:
            result["coupon_code"] = self.coupon_code
        return result

    def to_dict(self) -> dict[str, Any]:
        result = self.header_dict()
        result["items"] = [i.to_dict() for i in self.items]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            total_amount=to_money(data["total_amount"]),
            shipping_address=data.get("shipping_address", ""),
            status=normalize_status(data.get("status", "pending")),
            payment_method=data.get("payment_method", "upi"),
            utr_reference=data.get("utr_reference", ""),
            payment_screenshot_url=data.get("payment_screenshot_url"),
            coupon_code=data.get("coupon_code"),
            discount_amount=to_money(data.get("discount_amount", 0)),
            items=[OrderItem.from_dict(i) for i in data.get("items", [])],
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(
        cls,
        user_id: str,
        items: list[OrderItem],
        shipping_address: str,
        payment_method: str = "upi",
        utr_reference: str = "",
        payment_screenshot_url: str | None = None,
        coupon_code: str | None = None,
        discount_amount: Decimal = Decimal("0"),
    ) -> "Order":
        """Create a pending order; total is subtotal minus discount, floored at zero."""
        subtotal = sum((i.line_total for i in items), Decimal("0"))
        discount = min(max(discount_amount, Decimal("0")), subtotal)
        now = _utc_now()
        return cls(
            id=_generate_id(),
            user_id=user_id,
            total_amount=subtotal - discount,
            shipping_address=shipping_address,
            status="pending",
            payment_method=payment_method,
            utr_reference=utr_reference,
            payment_screenshot_url=payment_screenshot_url,
            coupon_code=coupon_code,
            discount_amount=discount,
            items=list(items),
            created_at=now,
            updated_at=now,
        )


@dataclass
class Expense:
    """A staff-recorded business expense, independent of orders."""

    id: str
    description: str
    amount: Decimal
    category: str
    date: str  # YYYY-MM-DD
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "amount": str(self.amount),
            "category": self.category,
            "date": self.date,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Expense":
        return cls(
            id=data["id"],
            description=data.get("description", ""),
            amount=to_money(data["amount"]),
            category=data["category"],
            date=data["date"],
            created_at=data.get("created_at", ""),
        )


@dataclass
class UserProfile:
    """Profile row keyed by the external identity id."""

    id: str
    email: str = ""
    full_name: str | None = None
    role: str = "customer"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "email": self.email, "role": self.role}
        if self.full_name is not None:
            result["full_name"] = self.full_name
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserProfile":
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            full_name=data.get("full_name"),
            role=data.get("role", "customer"),
        )
