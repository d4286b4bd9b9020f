"""Order assembly: turn a session's cart into a pending, payment-referenced order."""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from pathlib import PurePosixPath
from typing import Any, Callable
from urllib.parse import quote, urlencode

from . import config
from .addresses import AddressBook, format_address
from .blob_store import BlobStore
from .cart import CartLedger
from .coupons import AppliedCoupon, CouponEvaluator
from .data_store import DataStore
from .errors import (
    AddressRequiredError,
    EmptyCartError,
    InvalidPaymentReferenceError,
    NotAuthenticatedError,
    PartialOrderError,
    StorefrontError,
    TermsNotAcceptedError,
    ValidationError,
)
from .identity import Actor
from .models import PAYMENT_METHODS, Address, Order, OrderItem
from .orders import OrderRepository
from .utils import is_payment_reference

logger = logging.getLogger(__name__)


class CheckoutSession:
    """A visitor's cart plus the coupon applied to it."""

    def __init__(self, evaluator: CouponEvaluator):
        self.cart = CartLedger()
        self.coupon = AppliedCoupon(evaluator)

    @property
    def subtotal(self) -> Decimal:
        return self.cart.total()

    @property
    def discount(self) -> Decimal:
        return self.coupon.discount_for(self.subtotal)

    @property
    def payable(self) -> Decimal:
        return self.subtotal - self.discount

    def apply_coupon(self, code: str) -> Decimal:
        return self.coupon.apply(code, self.subtotal)

    def remove_coupon(self) -> None:
        self.coupon.remove()

    def reset(self) -> None:
        self.cart.clear()
        self.coupon.remove()

    def to_dict(self) -> dict[str, Any]:
        result = self.cart.to_dict()
        result["subtotal"] = str(self.subtotal)
        result["discount"] = str(self.discount)
        result["payable"] = str(self.payable)
        result["coupon"] = self.coupon.to_dict()
        return result


@dataclass
class NewAddress:
    """Address fields typed at checkout, saved before the order is written."""

    full_name: str
    phone: str
    line1: str
    city: str
    state: str
    pincode: str
    line2: str = ""
    alt_phone: str | None = None


@dataclass
class PaymentProof:
    """An uploaded payment screenshot."""

    filename: str
    content: bytes


@dataclass
class CheckoutRequest:
    """Everything the customer submits on the checkout form."""

    address_id: str | None = None
    new_address: NewAddress | None = None
    payment_method: str = "upi"
    utr_reference: str = ""
    agreed: bool = False
    payment_proof: PaymentProof | None = None


def payment_link(
    amount: Decimal,
    upi_id: str = config.PAYMENT_UPI_ID,
    merchant_name: str = config.PAYMENT_MERCHANT_NAME,
) -> str:
    """UPI deep link a payment app opens with payee and amount prefilled."""
    query = urlencode(
        {"pa": upi_id, "pn": merchant_name, "am": str(amount), "cu": config.CURRENCY},
        quote_via=quote,
        safe="@",
    )
    return f"upi://pay?{query}"


def proof_path(user_id: str, filename: str, now_ms: int) -> str:
    """Blob path for a payment proof: `<user id>/<submission ms>.<ext>`."""
    suffix = PurePosixPath(filename).suffix.lower()
    ext = suffix if suffix and len(suffix) <= 6 else ".bin"
    return f"{user_id}/{now_ms}{ext}"


class OrderAssembler:
    """
    Validates a checkout request and writes the order.

    The order header and its items are two dependent writes. If the items
    write fails the header is deleted again; if that delete fails too the
    order is left without items and reported as a PartialOrderError.
    """

    def __init__(
        self,
        store: DataStore,
        blobs: BlobStore,
        clock_ms: Callable[[], int] | None = None,
    ):
        self.store = store
        self.blobs = blobs
        self.orders = OrderRepository(store)
        self.addresses = AddressBook(store)
        self.clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    def validate(self, actor: Actor | None, session: CheckoutSession, request: CheckoutRequest) -> None:
        """
        Run the checks that need no remote call.

        Raises:
            NotAuthenticatedError, EmptyCartError, AddressRequiredError,
            InvalidPaymentReferenceError, TermsNotAcceptedError, ValidationError
        """
        if actor is None:
            raise NotAuthenticatedError()
        if session.cart.is_empty():
            raise EmptyCartError()
        if not request.address_id and request.new_address is None:
            raise AddressRequiredError()
        if request.payment_method not in PAYMENT_METHODS:
            raise ValidationError(
                "payment_method",
                f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}",
            )
        if request.payment_method == "upi" and not is_payment_reference(
            request.utr_reference, config.UTR_LENGTH
        ):
            raise InvalidPaymentReferenceError(request.utr_reference, config.UTR_LENGTH)
        if not request.agreed:
            raise TermsNotAcceptedError()

    def _resolve_address(self, actor: Actor, request: CheckoutRequest) -> Address:
        if request.address_id:
            return self.addresses.get_address(actor.id, request.address_id)
        new = request.new_address
        return self.addresses.save_address(
            actor.id,
            full_name=new.full_name,
            phone=new.phone,
            line1=new.line1,
            line2=new.line2,
            city=new.city,
            state=new.state,
            pincode=new.pincode,
            alt_phone=new.alt_phone,
        )

    def submit(self, actor: Actor | None, session: CheckoutSession, request: CheckoutRequest) -> Order:
        """
        Place the order for the session's cart.

        On success the session's cart and coupon are cleared. On any failure
        the session is left as it was so the customer can retry.

        Returns:
            The created order (status `pending`).
        """
        self.validate(actor, session, request)
        discount = session.coupon.revalidate(session.subtotal)

        address = self._resolve_address(actor, request)
        snapshot = format_address(address)

        screenshot_url = None
        proof_blob = None
        if request.payment_proof is not None:
            proof_blob = proof_path(actor.id, request.payment_proof.filename, self.clock_ms())
            screenshot_url = self.blobs.upload(proof_blob, request.payment_proof.content)

        items = [OrderItem.from_cart_item(i) for i in session.cart.items()]
        coupon_code = session.coupon.code if session.coupon.is_applied else None
        order = Order.create(
            user_id=actor.id,
            items=items,
            shipping_address=snapshot,
            payment_method=request.payment_method,
            utr_reference=request.utr_reference if request.payment_method == "upi" else "",
            payment_screenshot_url=screenshot_url,
            coupon_code=coupon_code,
            discount_amount=discount,
        )

        try:
            self.orders.insert_header(order)
        except StorefrontError:
            if proof_blob is not None:
                self._discard_proof(proof_blob)
            raise
        try:
            self.orders.insert_items(order)
        except StorefrontError as e:
            self._roll_back_header(order, e)
            if proof_blob is not None:
                self._discard_proof(proof_blob)
            raise

        session.reset()
        logger.info(
            "Order %s placed by %s: %d item(s), total %s",
            order.id, actor.id, len(order.items), order.total_amount,
        )
        return order

    def _discard_proof(self, path: str) -> None:
        """Delete a proof uploaded for an order that was never written."""
        try:
            self.blobs.delete(path)
        except StorefrontError as e:
            logger.warning("Could not delete orphaned payment proof %s: %s", path, e)

    def _roll_back_header(self, order: Order, cause: StorefrontError) -> None:
        """Delete a header whose items failed to write."""
        logger.warning("Items for order %s failed (%s); deleting header", order.id, cause)
        try:
            self.orders.delete_header(order.id)
        except StorefrontError as e:
            logger.warning("Could not delete header of order %s: %s", order.id, e)
            raise PartialOrderError(order.id, str(cause)) from e
