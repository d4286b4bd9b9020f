"""Coupon evaluation and the per-session applied-coupon state."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from .data_store import DataStore
from .errors import (
    CouponError,
    CouponExistsError,
    ExpiredCouponError,
    InvalidCouponError,
    MinimumOrderNotMetError,
    ValidationError,
)
from .models import DISCOUNT_TYPES, Coupon
from .utils import format_money, parse_timestamp, round_whole, to_money

Clock = Callable[[], datetime]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def compute_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    """
    Discount a coupon gives on `subtotal`, clamped to [0, subtotal].

    Percentage coupons round to the nearest whole currency unit before clamping.
    """
    if coupon.discount_type == "percentage":
        discount = round_whole(subtotal * coupon.discount_value / Decimal(100))
    else:
        discount = coupon.discount_value
    return min(max(discount, Decimal("0")), subtotal)


class CouponEvaluator:
    """Validates codes against the coupons table. Never writes to it."""

    def __init__(self, store: DataStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or _now

    def find(self, code: str) -> Coupon | None:
        """Case-insensitive lookup by code."""
        wanted = normalize_code(code)
        for row in self.store.select("coupons"):
            if normalize_code(row.get("code", "")) == wanted:
                return Coupon.from_dict(row)
        return None

    def evaluate(self, code: str, subtotal: Decimal) -> tuple[Coupon, Decimal]:
        """
        Check a code against the current subtotal.

        Returns:
            Tuple of (coupon, discount).

        Raises:
            InvalidCouponError: Code unknown or inactive.
            ExpiredCouponError: Expiry is in the past.
            MinimumOrderNotMetError: Subtotal below the coupon's minimum.
        """
        coupon = self.find(code)
        if coupon is None or not coupon.is_active:
            raise InvalidCouponError(normalize_code(code))

        if coupon.expires_at and parse_timestamp(coupon.expires_at) < self.clock():
            raise ExpiredCouponError(coupon.code, coupon.expires_at)

        if subtotal < coupon.min_order_value:
            raise MinimumOrderNotMetError(coupon.code, coupon.min_order_value)

        return coupon, compute_discount(coupon, subtotal)

    def list_coupons(self) -> list[Coupon]:
        """All coupons, active first, then soonest expiry (no expiry last)."""
        coupons = [Coupon.from_dict(r) for r in self.store.select("coupons")]
        coupons.sort(
            key=lambda c: (
                not c.is_active,
                c.expires_at is None,
                parse_timestamp(c.expires_at) if c.expires_at else datetime.min.replace(tzinfo=timezone.utc),
                c.code,
            )
        )
        return coupons


def create_coupon(
    store: DataStore,
    code: str,
    discount_type: str,
    discount_value: Decimal | int | str,
    min_order_value: Decimal | int | str = 0,
    expires_at: str | None = None,
    is_active: bool = True,
) -> Coupon:
    """
    Add a coupon. Used by staff tooling; checkout only reads coupons.

    Raises:
        ValidationError: Bad type, value or expiry.
        CouponExistsError: Code already present (case-insensitive).
    """
    normalized = normalize_code(code)
    if not normalized:
        raise ValidationError("code", "Coupon code is required.")
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(
            "discount_type", f"Discount type must be one of: {', '.join(DISCOUNT_TYPES)}"
        )
    try:
        value = to_money(discount_value)
        minimum = to_money(min_order_value)
    except ValueError as e:
        raise ValidationError("discount_value", str(e))
    if value <= 0:
        raise ValidationError("discount_value", "Discount value must be positive.")
    if discount_type == "percentage" and value > 100:
        raise ValidationError("discount_value", "Percentage discount cannot exceed 100.")
    if minimum < 0:
        raise ValidationError("min_order_value", "Minimum order value cannot be negative.")
    if expires_at:
        try:
            parse_timestamp(expires_at)
        except ValueError:
            raise ValidationError("expires_at", f"Invalid expiry: {expires_at}")

    if CouponEvaluator(store).find(normalized) is not None:
        raise CouponExistsError(normalized)

    coupon = Coupon(
        code=normalized,
        discount_type=discount_type,
        discount_value=value,
        min_order_value=minimum,
        is_active=is_active,
        expires_at=expires_at or None,
    )
    store.insert("coupons", coupon.to_dict())
    return coupon


class AppliedCoupon:
    """
    The coupon currently applied to one checkout session.

    At most one coupon is in effect. Applying a code always clears the previous
    one first, so discounts never stack, and a removed coupon stays removed.
    """

    def __init__(self, evaluator: CouponEvaluator):
        self.evaluator = evaluator
        self.code: str | None = None
        self.discount = Decimal("0")
        self.message: str | None = None
        self.error: str | None = None

    @property
    def is_applied(self) -> bool:
        return self.code is not None

    def apply(self, code: str, subtotal: Decimal) -> Decimal:
        """
        Replace any applied coupon with `code`.

        Raises:
            CouponError: The code was rejected; no coupon is applied afterwards.
        """
        self.remove()
        try:
            coupon, discount = self.evaluator.evaluate(code, subtotal)
        except CouponError as e:
            self.error = e.reason
            self.message = str(e)
            raise

        self.code = coupon.code
        self.discount = discount
        self.message = f"Coupon applied! You saved {format_money(discount)}"
        return discount

    def remove(self) -> None:
        self.code = None
        self.discount = Decimal("0")
        self.message = None
        self.error = None

    def revalidate(self, subtotal: Decimal) -> Decimal:
        """
        Re-check the applied code against a subtotal that may have changed.

        Returns:
            The discount on `subtotal` (zero when no coupon is applied).

        Raises:
            CouponError: The coupon no longer qualifies. It stays applied with
                a zero discount and the rejection as its message.
        """
        if not self.is_applied:
            return Decimal("0")
        try:
            _, discount = self.evaluator.evaluate(self.code, subtotal)
        except CouponError as e:
            self.discount = Decimal("0")
            self.error = e.reason
            self.message = str(e)
            raise

        self.discount = discount
        self.error = None
        self.message = f"Coupon applied! You saved {format_money(discount)}"
        return discount

    def discount_for(self, subtotal: Decimal) -> Decimal:
        """The applied coupon's discount on `subtotal`, or zero if it no longer qualifies."""
        try:
            return self.revalidate(subtotal)
        except CouponError:
            return Decimal("0")

    def to_dict(self) -> dict[str, str | None]:
        return {
            "code": self.code,
            "discount": str(self.discount),
            "message": self.message,
            "error": self.error,
        }
