"""FastAPI REST API for the storefront."""

import base64
import binascii
import mimetypes
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__, config
from .addresses import AddressBook
from .blob_store import BlobStore
from .catalog import Catalog
from .checkout import (
    CheckoutRequest,
    CheckoutSession,
    NewAddress,
    OrderAssembler,
    PaymentProof,
    payment_link,
)
from .coupons import CouponEvaluator
from .data_store import DataStore
from .documents import build_bulk_labels, build_invoice, build_label
from .errors import (
    AddressNotFoundError,
    CouponError,
    CouponExistsError,
    ExpenseNotFoundError,
    ForbiddenError,
    IllegalTransitionError,
    NotAuthenticatedError,
    OrderNotFoundError,
    PartialOrderError,
    PersistenceError,
    ProductNotFoundError,
    RecordNotFoundError,
    SchemaVersionError,
    StorefrontError,
    UnknownStatusError,
    UploadError,
    ValidationError,
)
from .expenses import ExpenseLedger
from .finance import FinanceAggregator
from .identity import Actor, ProfileDirectory
from .models import Address, Coupon, Expense, Order, Product
from .order_board import OrderBoard
from .orders import OrderRepository
from .workflow import allowed_targets, can_view, transition


# --- Pydantic Schemas ---


class ProductSchema(BaseModel):
    id: str
    name: str
    description: str = ""
    price: float
    category: str = ""
    image_url: str = ""
    stock: int = 0


class ProductListResponse(BaseModel):
    products: list[ProductSchema]
    count: int
    categories: list[str]


class CartItemSchema(BaseModel):
    product: ProductSchema
    quantity: int
    line_total: float


class CouponStateSchema(BaseModel):
    code: Optional[str] = None
    discount: float = 0
    message: Optional[str] = None
    error: Optional[str] = None


class CartSchema(BaseModel):
    items: list[CartItemSchema]
    count: int
    subtotal: float
    discount: float
    payable: float
    coupon: CouponStateSchema


class CartAddRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1, le=99)


class CartUpdateRequest(BaseModel):
    quantity: int = Field(..., description="New quantity; zero or less removes the item")


class CouponApplyRequest(BaseModel):
    code: str = Field(..., min_length=1)


class AddressSchema(BaseModel):
    id: str
    user_id: str
    full_name: str
    phone: str
    alt_phone: Optional[str] = None
    line1: str
    line2: str = ""
    city: str
    state: str
    pincode: str
    is_default: bool
    created_at: str


class AddressCreateRequest(BaseModel):
    full_name: str
    phone: str
    alt_phone: Optional[str] = None
    line1: str
    line2: str = ""
    city: str
    state: str
    pincode: str


class AddressListResponse(BaseModel):
    addresses: list[AddressSchema]
    count: int


class PaymentLinkResponse(BaseModel):
    amount: float
    upi_id: str
    merchant_name: str
    link: str


class PaymentProofSchema(BaseModel):
    filename: str
    content_base64: str


class CheckoutRequestSchema(BaseModel):
    """Request body for placing an order."""

    address_id: Optional[str] = Field(None, description="Saved address to ship to")
    new_address: Optional[AddressCreateRequest] = Field(
        None, description="Address to save and ship to when no address_id is given"
    )
    payment_method: str = Field(default="upi", description="'upi' or 'cod'")
    utr_reference: str = Field(default="", description="12-digit UPI transaction reference")
    agreed: bool = Field(default=False, description="Terms & Conditions and Refund Policy accepted")
    payment_proof: Optional[PaymentProofSchema] = None


class OrderItemSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    price: float


class OrderSchema(BaseModel):
    id: str
    user_id: str
    status: str
    payment_method: str
    shipping_address: str
    utr_reference: str
    payment_screenshot_url: Optional[str] = None
    coupon_code: Optional[str] = None
    discount_amount: float
    subtotal: float
    total_amount: float
    items: list[OrderItemSchema]
    allowed_transitions: list[str]
    created_at: str
    updated_at: str


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., description="Target status")


class LabelSchema(BaseModel):
    order_id: str
    sender: str
    ship_to: str
    payment_type: str
    payment_marker: str
    item_count: int
    created_at: str


class LabelListResponse(BaseModel):
    labels: list[LabelSchema]
    count: int


class ExpenseSchema(BaseModel):
    id: str
    description: str
    amount: float
    category: str
    date: str
    created_at: str


class ExpenseCreateRequest(BaseModel):
    description: str
    amount: float
    category: str
    date: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")


class ExpenseListResponse(BaseModel):
    expenses: list[ExpenseSchema]
    count: int
    total: float


class CouponSchema(BaseModel):
    id: str
    code: str
    discount_type: str
    discount_value: float
    min_order_value: float
    is_active: bool
    expires_at: Optional[str] = None


class CouponListResponse(BaseModel):
    coupons: list[CouponSchema]
    count: int


class BucketSchema(BaseModel):
    key: str
    revenue: float
    expense: float
    profit: float


class FinanceSummaryResponse(BaseModel):
    period: str
    revenue: float
    expenditure: float
    net_profit: float
    series: list[BucketSchema]
    by_category: dict[str, float]
    order_counts: dict[str, int]


class ErrorResponse(BaseModel):
    detail: str
    error_type: str
    field: Optional[str] = None


# --- Collaborators ---


_data_store: DataStore | None = None
_blob_store: BlobStore | None = None
# One checkout session (cart + coupon) per signed-in user
_sessions: dict[str, CheckoutSession] = {}


def configure(
    data_dir: Path | None = None,
    blob_dir: Path | None = None,
    public_url: str | None = None,
) -> None:
    """Point the API at storage directories and drop all sessions."""
    global _data_store, _blob_store
    _data_store = DataStore(data_dir)
    _blob_store = BlobStore(blob_dir, public_url=public_url)
    _sessions.clear()


def get_data_store() -> DataStore:
    """Get the global DataStore."""
    global _data_store
    if _data_store is None:
        _data_store = DataStore()
    return _data_store


def get_blob_store() -> BlobStore:
    """Get the global BlobStore."""
    global _blob_store
    if _blob_store is None:
        _blob_store = BlobStore()
    return _blob_store


def get_actor(user_id: str | None) -> Actor | None:
    return ProfileDirectory(get_data_store()).resolve_actor(user_id)


def require_actor(user_id: str | None) -> Actor:
    actor = get_actor(user_id)
    if actor is None:
        raise NotAuthenticatedError()
    return actor


def require_admin(user_id: str | None) -> Actor:
    actor = require_actor(user_id)
    if not actor.is_admin:
        raise ForbiddenError("staff only")
    return actor


def get_session(actor: Actor) -> CheckoutSession:
    session = _sessions.get(actor.id)
    if session is None:
        session = CheckoutSession(CouponEvaluator(get_data_store()))
        _sessions[actor.id] = session
    return session


# --- Converters ---


def product_to_schema(product: Product) -> ProductSchema:
    return ProductSchema(
        id=product.id,
        name=product.name,
        description=product.description,
        price=float(product.price),
        category=product.category,
        image_url=product.image_url,
        stock=product.stock,
    )


def session_to_schema(session: CheckoutSession) -> CartSchema:
    return CartSchema(
        items=[
            CartItemSchema(
                product=product_to_schema(i.product),
                quantity=i.quantity,
                line_total=float(i.line_total),
            )
            for i in session.cart.items()
        ],
        count=session.cart.count(),
        subtotal=float(session.subtotal),
        discount=float(session.discount),
        payable=float(session.payable),
        coupon=CouponStateSchema(
            code=session.coupon.code,
            discount=float(session.coupon.discount),
            message=session.coupon.message,
            error=session.coupon.error,
        ),
    )


def address_to_schema(address: Address) -> AddressSchema:
    return AddressSchema(**address.to_dict())


def order_to_schema(order: Order) -> OrderSchema:
    return OrderSchema(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        payment_method=order.payment_method,
        shipping_address=order.shipping_address,
        utr_reference=order.utr_reference,
        payment_screenshot_url=order.payment_screenshot_url,
        coupon_code=order.coupon_code,
        discount_amount=float(order.discount_amount),
        subtotal=float(order.subtotal),
        total_amount=float(order.total_amount),
        items=[
            OrderItemSchema(
                product_id=i.product_id,
                product_name=i.product_name,
                quantity=i.quantity,
                price=float(i.price),
            )
            for i in order.items
        ],
        allowed_transitions=allowed_targets(order.status),
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def expense_to_schema(expense: Expense) -> ExpenseSchema:
    return ExpenseSchema(
        id=expense.id,
        description=expense.description,
        amount=float(expense.amount),
        category=expense.category,
        date=expense.date,
        created_at=expense.created_at,
    )


def coupon_to_schema(coupon: Coupon) -> CouponSchema:
    return CouponSchema(
        id=coupon.id,
        code=coupon.code,
        discount_type=coupon.discount_type,
        discount_value=float(coupon.discount_value),
        min_order_value=float(coupon.min_order_value),
        is_active=coupon.is_active,
        expires_at=coupon.expires_at,
    )


def _decode_proof(proof: PaymentProofSchema | None) -> PaymentProof | None:
    if proof is None:
        return None
    try:
        content = base64.b64decode(proof.content_base64, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("payment_proof", "Payment screenshot is not valid base64.")
    return PaymentProof(filename=proof.filename, content=content)


# --- FastAPI App ---


app = FastAPI(
    title="storefront API",
    description="Cart, checkout, order workflow and finance reporting",
    version=__version__,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes; subclasses inherit their parent's code
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    UnknownStatusError: 400,
    NotAuthenticatedError: 401,
    ForbiddenError: 403,
    RecordNotFoundError: 404,
    ProductNotFoundError: 404,
    OrderNotFoundError: 404,
    AddressNotFoundError: 404,
    ExpenseNotFoundError: 404,
    IllegalTransitionError: 409,
    CouponExistsError: 409,
    PersistenceError: 500,
    SchemaVersionError: 500,
    PartialOrderError: 500,
    UploadError: 502,
}


def status_code_for(exc: StorefrontError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Map StorefrontError subclasses to appropriate HTTP responses."""
    content: dict[str, object] = {"detail": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, ValidationError):
        content["field"] = exc.field
    if isinstance(exc, CouponError):
        content["reason"] = exc.reason
    if isinstance(exc, IllegalTransitionError):
        content["current_status"] = exc.current
        content["attempted_status"] = exc.attempted
    return JSONResponse(status_code=status_code_for(exc), content=content)


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    try:
        products = get_data_store().select("products")
        return {"status": "ok", "product_count": len(products)}
    except StorefrontError as e:
        return {"status": "error", "detail": str(e)}


# --- Catalog Endpoints ---


@app.get("/api/products", response_model=ProductListResponse)
def list_products(
    category: Optional[str] = Query(None, description="Filter by category"),
    q: Optional[str] = Query(None, description="Search name and description"),
):
    """List products."""
    catalog = Catalog(get_data_store())
    products = catalog.list_products(category=category, search=q)
    return ProductListResponse(
        products=[product_to_schema(p) for p in products],
        count=len(products),
        categories=catalog.list_categories(),
    )


@app.get("/api/products/{product_id}", response_model=ProductSchema)
def get_product(product_id: str):
    """Get a single product."""
    return product_to_schema(Catalog(get_data_store()).get_product(product_id))


# --- Cart Endpoints ---


@app.get("/api/cart", response_model=CartSchema)
def get_cart(x_user_id: Optional[str] = Header(None)):
    """Get the signed-in user's cart."""
    session = get_session(require_actor(x_user_id))
    return session_to_schema(session)


@app.post("/api/cart/items", response_model=CartSchema)
def add_cart_item(request: CartAddRequest, x_user_id: Optional[str] = Header(None)):
    """Add a product to the cart (or bump its quantity)."""
    session = get_session(require_actor(x_user_id))
    product = Catalog(get_data_store()).get_product(request.product_id)
    for _ in range(request.quantity):
        session.cart.add(product)
    return session_to_schema(session)


@app.patch("/api/cart/items/{product_id}", response_model=CartSchema)
def update_cart_item(
    product_id: str,
    request: CartUpdateRequest,
    x_user_id: Optional[str] = Header(None),
):
    """Set a cart line's quantity; zero or less removes it."""
    session = get_session(require_actor(x_user_id))
    session.cart.set_quantity(product_id, request.quantity)
    return session_to_schema(session)


@app.delete("/api/cart/items/{product_id}", response_model=CartSchema)
def remove_cart_item(product_id: str, x_user_id: Optional[str] = Header(None)):
    """Remove a product from the cart."""
    session = get_session(require_actor(x_user_id))
    session.cart.remove(product_id)
    return session_to_schema(session)


@app.delete("/api/cart", response_model=CartSchema)
def clear_cart(x_user_id: Optional[str] = Header(None)):
    """Empty the cart and drop any coupon."""
    session = get_session(require_actor(x_user_id))
    session.reset()
    return session_to_schema(session)


@app.post("/api/cart/coupon", response_model=CartSchema)
def apply_coupon(request: CouponApplyRequest, x_user_id: Optional[str] = Header(None)):
    """
    Apply a coupon, replacing any coupon already applied.

    A rejected code leaves the cart with no coupon.
    """
    session = get_session(require_actor(x_user_id))
    session.apply_coupon(request.code)
    return session_to_schema(session)


@app.delete("/api/cart/coupon", response_model=CartSchema)
def remove_coupon(x_user_id: Optional[str] = Header(None)):
    """Remove the applied coupon."""
    session = get_session(require_actor(x_user_id))
    session.remove_coupon()
    return session_to_schema(session)


# --- Address Endpoints ---


@app.get("/api/addresses", response_model=AddressListResponse)
def list_addresses(x_user_id: Optional[str] = Header(None)):
    """List the signed-in user's addresses, default first."""
    actor = require_actor(x_user_id)
    addresses = AddressBook(get_data_store()).list_addresses(actor.id)
    return AddressListResponse(
        addresses=[address_to_schema(a) for a in addresses],
        count=len(addresses),
    )


@app.post("/api/addresses", response_model=AddressSchema, status_code=201)
def create_address(request: AddressCreateRequest, x_user_id: Optional[str] = Header(None)):
    """Save a new address. The first one becomes the default."""
    actor = require_actor(x_user_id)
    address = AddressBook(get_data_store()).save_address(actor.id, **request.model_dump())
    return address_to_schema(address)


@app.post("/api/addresses/{address_id}/default", response_model=AddressSchema)
def set_default_address(address_id: str, x_user_id: Optional[str] = Header(None)):
    """Make an address the default."""
    actor = require_actor(x_user_id)
    address = AddressBook(get_data_store()).set_default(actor.id, address_id)
    return address_to_schema(address)


@app.delete("/api/addresses/{address_id}", response_model=AddressSchema)
def delete_address(address_id: str, x_user_id: Optional[str] = Header(None)):
    """Delete an address. Existing orders keep their copy."""
    actor = require_actor(x_user_id)
    address = AddressBook(get_data_store()).delete_address(actor.id, address_id)
    return address_to_schema(address)


# --- Checkout Endpoints ---


@app.get("/api/checkout/payment-link", response_model=PaymentLinkResponse)
def get_payment_link(x_user_id: Optional[str] = Header(None)):
    """UPI deep link for the amount currently payable."""
    session = get_session(require_actor(x_user_id))
    return PaymentLinkResponse(
        amount=float(session.payable),
        upi_id=config.PAYMENT_UPI_ID,
        merchant_name=config.PAYMENT_MERCHANT_NAME,
        link=payment_link(session.payable),
    )


@app.post("/api/checkout", response_model=OrderSchema, status_code=201)
def checkout(request: CheckoutRequestSchema, x_user_id: Optional[str] = Header(None)):
    """
    Place an order for the cart.

    The cart is cleared only when the order and all its items were written.
    """
    actor = get_actor(x_user_id)
    session = get_session(actor) if actor else CheckoutSession(CouponEvaluator(get_data_store()))

    new_address = None
    if request.new_address is not None:
        new_address = NewAddress(**request.new_address.model_dump())

    checkout_request = CheckoutRequest(
        address_id=request.address_id,
        new_address=new_address,
        payment_method=request.payment_method,
        utr_reference=request.utr_reference,
        agreed=request.agreed,
        payment_proof=_decode_proof(request.payment_proof),
    )

    assembler = OrderAssembler(get_data_store(), get_blob_store())
    order = assembler.submit(actor, session, checkout_request)
    return order_to_schema(order)


# --- Customer Order Endpoints ---


@app.get("/api/orders", response_model=OrderListResponse)
def list_my_orders(x_user_id: Optional[str] = Header(None)):
    """The signed-in user's orders, newest first."""
    actor = require_actor(x_user_id)
    orders = OrderRepository(get_data_store()).list_orders(user_id=actor.id)
    return OrderListResponse(orders=[order_to_schema(o) for o in orders], count=len(orders))


@app.get("/api/orders/{order_id}", response_model=OrderSchema)
def get_order(order_id: str, x_user_id: Optional[str] = Header(None)):
    """Get one order. Customers only see their own."""
    actor = require_actor(x_user_id)
    order = OrderRepository(get_data_store()).get_order(order_id)
    if not can_view(actor, order):
        raise OrderNotFoundError(order_id)
    return order_to_schema(order)


@app.get("/api/orders/{order_id}/invoice")
def get_invoice(order_id: str, x_user_id: Optional[str] = Header(None)):
    """Invoice content for an order."""
    actor = require_actor(x_user_id)
    order = OrderRepository(get_data_store()).get_order(order_id)
    return build_invoice(order, actor)


# --- Staff Endpoints ---


@app.get("/api/admin/orders", response_model=OrderListResponse)
def list_all_orders(
    status: Optional[str] = Query(None, description="Only orders in this status"),
    x_user_id: Optional[str] = Header(None),
):
    """All orders, newest first."""
    actor = require_admin(x_user_id)
    board = OrderBoard(get_data_store(), actor, status=status)
    orders = board.refresh()
    return OrderListResponse(orders=[order_to_schema(o) for o in orders], count=len(orders))


@app.get("/api/admin/orders/incomplete", response_model=OrderListResponse)
def list_incomplete_orders(x_user_id: Optional[str] = Header(None)):
    """Orders whose items failed to write."""
    require_admin(x_user_id)
    orders = OrderRepository(get_data_store()).find_incomplete()
    return OrderListResponse(orders=[order_to_schema(o) for o in orders], count=len(orders))


@app.post("/api/admin/orders/{order_id}/status", response_model=OrderSchema)
def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    x_user_id: Optional[str] = Header(None),
):
    """Move an order along its lifecycle."""
    actor = require_admin(x_user_id)
    order = transition(OrderRepository(get_data_store()), actor, order_id, request.status)
    return order_to_schema(order)


@app.get("/api/admin/orders/{order_id}/label", response_model=LabelSchema)
def get_label(order_id: str, x_user_id: Optional[str] = Header(None)):
    """Shipping label content for one order."""
    actor = require_admin(x_user_id)
    order = OrderRepository(get_data_store()).get_order(order_id)
    return LabelSchema(**build_label(order, actor))


@app.get("/api/admin/labels", response_model=LabelListResponse)
def list_labels(x_user_id: Optional[str] = Header(None)):
    """Labels for every approved order."""
    actor = require_admin(x_user_id)
    orders = OrderRepository(get_data_store()).list_orders(status="approved")
    labels = build_bulk_labels(orders, actor)
    return LabelListResponse(labels=[LabelSchema(**label) for label in labels], count=len(labels))


@app.get("/api/admin/expenses", response_model=ExpenseListResponse)
def list_expenses(
    category: Optional[str] = Query(None),
    x_user_id: Optional[str] = Header(None),
):
    """List expenses, most recent first."""
    require_admin(x_user_id)
    expenses = ExpenseLedger(get_data_store()).list_expenses(category=category)
    return ExpenseListResponse(
        expenses=[expense_to_schema(e) for e in expenses],
        count=len(expenses),
        total=float(sum((e.amount for e in expenses), 0)),
    )


@app.post("/api/admin/expenses", response_model=ExpenseSchema, status_code=201)
def create_expense(request: ExpenseCreateRequest, x_user_id: Optional[str] = Header(None)):
    """Record an expense."""
    require_admin(x_user_id)
    expense = ExpenseLedger(get_data_store()).add_expense(
        description=request.description,
        amount=str(request.amount),
        category=request.category,
        date=request.date,
    )
    return expense_to_schema(expense)


@app.delete("/api/admin/expenses/{expense_id}", response_model=ExpenseSchema)
def delete_expense(expense_id: str, x_user_id: Optional[str] = Header(None)):
    """Delete an expense."""
    require_admin(x_user_id)
    expense = ExpenseLedger(get_data_store()).delete_expense(expense_id)
    return expense_to_schema(expense)


@app.get("/api/admin/coupons", response_model=CouponListResponse)
def list_coupons(x_user_id: Optional[str] = Header(None)):
    """All coupons, active first, soonest expiry first."""
    require_admin(x_user_id)
    coupons = CouponEvaluator(get_data_store()).list_coupons()
    return CouponListResponse(coupons=[coupon_to_schema(c) for c in coupons], count=len(coupons))


@app.get("/api/admin/finance", response_model=FinanceSummaryResponse)
def get_finance_summary(
    period: str = Query(default="daily", description="'daily' or 'monthly'"),
    x_user_id: Optional[str] = Header(None),
):
    """Revenue, expenditure and profit, with a bucketed series."""
    require_admin(x_user_id)
    summary = FinanceAggregator(get_data_store()).summary(period)
    return FinanceSummaryResponse(
        period=summary.period,
        revenue=float(summary.revenue),
        expenditure=float(summary.expenditure),
        net_profit=float(summary.net_profit),
        series=[
            BucketSchema(
                key=b.key,
                revenue=float(b.revenue),
                expense=float(b.expense),
                profit=float(b.profit),
            )
            for b in summary.buckets
        ],
        by_category={k: float(v) for k, v in summary.by_category.items()},
        order_counts=summary.order_counts,
    )


# --- Payment Proof Files ---


@app.get("/files/{bucket}/{path:path}")
def get_file(bucket: str, path: str):
    """Serve an uploaded payment proof."""
    blobs = get_blob_store()
    try:
        found = bucket == blobs.bucket and blobs.exists(path)
    except UploadError:
        found = False
    if not found:
        raise HTTPException(status_code=404, detail=f"File not found: {path}")
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=blobs.read(path), media_type=media_type)
