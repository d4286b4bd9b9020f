"""Custom exceptions for storefront."""

from decimal import Decimal


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


# --- Validation errors (raised before any remote call) ---


class ValidationError(StorefrontError):
    """Raised when user input fails a checkout or form rule."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class NotAuthenticatedError(ValidationError):
    """Raised when an operation needs a signed-in actor and none is present."""

    def __init__(self):
        super().__init__("user", "Please login to continue.")


class EmptyCartError(ValidationError):
    """Raised when checking out with nothing in the cart."""

    def __init__(self):
        super().__init__("cart", "Your cart is empty.")


class AddressRequiredError(ValidationError):
    """Raised when no delivery address is selected or entered."""

    def __init__(self):
        super().__init__("address", "Please select or add a delivery address.")


class InvalidAddressError(ValidationError):
    """Raised when a new address is missing a required field."""

    def __init__(self, field: str, reason: str = "is required"):
        super().__init__(field, f"Address {field} {reason}.")


class InvalidPaymentReferenceError(ValidationError):
    """Raised when the UTR is not an exact-length numeric string."""

    def __init__(self, reference: str, length: int):
        self.reference = reference
        self.length = length
        super().__init__(
            "utr_reference",
            f"Please enter a valid {length}-digit UTR/Reference ID.",
        )


class TermsNotAcceptedError(ValidationError):
    """Raised when the terms and refund policy were not agreed to."""

    def __init__(self):
        super().__init__("agreed", "Please agree to the Terms & Conditions.")


class InvalidQuantityError(ValidationError):
    """Raised when a cart quantity is not an integer."""

    def __init__(self, value: object):
        self.value = value
        super().__init__("quantity", f"Invalid quantity: {value!r}")


class InvalidPeriodError(ValidationError):
    """Raised when a finance period is neither daily nor monthly."""

    def __init__(self, period: str):
        self.period = period
        super().__init__("period", f"Unknown period '{period}'. Use 'daily' or 'monthly'.")


class InvalidExpenseError(ValidationError):
    """Raised when an expense has a bad amount, category or date."""

    pass


# --- Coupon rejections ---


class CouponError(ValidationError):
    """Base class for coupon rejections. `reason` identifies the outcome."""

    reason = "invalid"

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__("coupon_code", message)


class InvalidCouponError(CouponError):
    """Raised when a code does not exist or is inactive."""

    reason = "invalid"

    def __init__(self, code: str):
        super().__init__(code, "Invalid coupon code")


class ExpiredCouponError(CouponError):
    """Raised when a coupon's expiry is in the past."""

    reason = "expired"

    def __init__(self, code: str, expires_at: str):
        self.expires_at = expires_at
        super().__init__(code, "Coupon has expired")


class MinimumOrderNotMetError(CouponError):
    """Raised when the cart subtotal is below the coupon threshold."""

    reason = "minimum_not_met"

    def __init__(self, code: str, min_order_value: Decimal):
        self.min_order_value = min_order_value
        super().__init__(code, f"Minimum order value of ₹{min_order_value} required")


# --- Remote write errors ---


class PersistenceError(StorefrontError):
    """Raised when the data store fails to read or write a table."""

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(message)


class UploadError(StorefrontError):
    """Raised when storing a payment proof fails."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Upload failed for {path}: {message}")


class PartialOrderError(StorefrontError):
    """Raised when an order header was written but its items were not and it could not be removed."""

    def __init__(self, order_id: str, message: str):
        self.order_id = order_id
        super().__init__(
            f"Order {order_id} was created without items and could not be rolled back: {message}"
        )


class SchemaVersionError(StorefrontError):
    """Raised when a table file has an unsupported schema version."""

    def __init__(self, table: str, found: int, supported: int):
        self.table = table
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported schema version {found} for table '{table}'. "
            f"This tool supports version {supported}."
        )


# --- State machine ---


class IllegalTransitionError(StorefrontError):
    """Raised when a status change is not an edge of the order graph."""

    def __init__(self, order_id: str, current: str, attempted: str):
        self.order_id = order_id
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Cannot move order {order_id} from '{current}' to '{attempted}'"
        )


class UnknownStatusError(StorefrontError):
    """Raised when a status value is not part of the order lifecycle."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Unknown order status: {status}")


# --- Not found / forbidden ---


class ForbiddenError(StorefrontError):
    """Raised when the actor lacks the role for an operation."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Not allowed: {action}")


class RecordNotFoundError(StorefrontError):
    """Raised when a row id doesn't exist."""

    kind = "Record"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"{self.kind} not found: {record_id}")


class ProductNotFoundError(RecordNotFoundError):
    kind = "Product"


class OrderNotFoundError(RecordNotFoundError):
    kind = "Order"


class AddressNotFoundError(RecordNotFoundError):
    kind = "Address"


class ExpenseNotFoundError(RecordNotFoundError):
    kind = "Expense"


class CouponExistsError(StorefrontError):
    """Raised when creating a coupon whose code is already taken."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Coupon already exists: {code}")
