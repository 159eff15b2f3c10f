"""
Order Ledger - lifecycle of resume orders.

created (paid=false, payment_status="pending")
    -> checkout reference issued (payment_session_id set, still unpaid)
    -> payment confirmed (paid=true), exactly once

Payment confirmations arrive from the provider webhook at-least-once and may
be duplicated, reordered, or reference orders we never created. The paid flag
is flipped by a single conditional update on the store (update-if-unpaid), so
two concurrent deliveries cannot both win. No in-process locking is used.

authorize_download() is the paywall: the only way to obtain stored resume data
for rendering.
"""
import os
import time
import uuid
import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple

from pydantic import ValidationError as PydanticValidationError

from models import (
    ContactEmail, PaymentStatus, ResumeData, TemplateVariant,
    normalize_template_variant,
)
from services.order_store import order_store, DuplicateOrderId

logger = logging.getLogger(__name__)

DEFAULT_PRICE = Decimal(os.getenv("DEFAULT_PRICE", "19.90"))
ORDER_CURRENCY = os.getenv("ORDER_CURRENCY", "BRL")
DEFAULT_PAYMENT_PROVIDER = "stripe"
ORDER_ID_ATTEMPTS = 3


class OrderLedgerError(Exception):
    """Base class for ledger errors surfaced to the calling boundary."""
    error_code = "ORDER_ERROR"

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.order_id = order_id


class ValidationError(OrderLedgerError):
    """Required creation input missing or malformed (user-correctable)."""
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class OrderNotFound(OrderLedgerError):
    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}", order_id)


class PaymentRequired(OrderLedgerError):
    """Download attempted before the payment confirmation was recorded."""
    error_code = "PAYMENT_REQUIRED"

    def __init__(self, order_id: str):
        super().__init__(f"Payment not confirmed for order {order_id}", order_id)


class ConfirmationOutcome(str, Enum):
    """Result of reconciling a payment confirmation event.

    Both IGNORED_* values are benign: the event is acknowledged and logged.
    """
    APPLIED = "APPLIED"
    IGNORED_UNKNOWN_ORDER = "IGNORED_UNKNOWN_ORDER"
    IGNORED_ALREADY_PAID = "IGNORED_ALREADY_PAID"

    @property
    def ignored(self) -> bool:
        return self is not ConfirmationOutcome.APPLIED


def generate_order_id() -> str:
    """Generate order ID: ORD-<epoch millis>-<6 random hex chars>"""
    millis = int(time.time() * 1000)
    return f"ORD-{millis}-{uuid.uuid4().hex[:6].upper()}"


def to_minor_units(amount: Decimal) -> int:
    """19.9 -> 1990"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_minor_units(amount: int) -> str:
    """1990 -> 19.90"""
    return str((Decimal(amount) / 100).quantize(Decimal("0.01")))


def _validate_contact(resume_data: ResumeData) -> None:
    info = resume_data.personal_info
    name = (info.name or "").strip() if info else ""
    email = (info.email or "").strip() if info else ""
    if not name:
        raise ValidationError("personal_info.name is required", field="personal_info.name")
    if not email:
        raise ValidationError("personal_info.email is required", field="personal_info.email")
    try:
        ContactEmail(email=email)
    except PydanticValidationError:
        raise ValidationError(f"Invalid e-mail address: {email}", field="personal_info.email")


async def create_order(
    resume_data: ResumeData,
    template: Any = None,
    price: Optional[Decimal] = None,
) -> Dict[str, Any]:
    """
    Create a new unpaid order.
    Raises ValidationError when name or e-mail are missing.
    """
    _validate_contact(resume_data)

    variant = normalize_template_variant(template)
    amount = to_minor_units(price if price is not None else DEFAULT_PRICE)
    if amount <= 0:
        raise ValidationError("price must be positive", field="price")

    now = datetime.now(timezone.utc)
    order_doc = {
        "order_id": None,
        "price": amount,
        "currency": ORDER_CURRENCY,
        "paid": False,
        "payment_status": PaymentStatus.PENDING.value,
        "payment_provider": DEFAULT_PAYMENT_PROVIDER,
        "payment_session_id": None,
        "template": variant.value,
        "data": resume_data.model_dump(exclude_none=True),
        "created_at": now,
        "updated_at": now,
    }

    for attempt in range(1, ORDER_ID_ATTEMPTS + 1):
        order_doc["order_id"] = generate_order_id()
        try:
            created = await order_store.insert_unique(dict(order_doc))
            break
        except DuplicateOrderId:
            logger.warning(
                f"Order id collision on {order_doc['order_id']} (attempt {attempt}/{ORDER_ID_ATTEMPTS})"
            )
    else:
        raise OrderLedgerError("Could not allocate a unique order id")

    logger.info(f"Order created: {created['order_id']} template={variant.value} price={amount}")
    return created


async def get_order(order_id: str) -> Dict[str, Any]:
    """Get order by ID. Raises OrderNotFound."""
    order = await order_store.get(order_id)
    if not order:
        raise OrderNotFound(order_id)
    return order


async def issue_checkout_reference(order_id: str, session_id: str) -> bool:
    """
    Record a pending payment session on an unpaid order.
    Returns False if the order is already paid (nothing written).
    """
    updated = await order_store.update_if(
        order_id,
        {"paid": {"$ne": True}},
        {"payment_session_id": session_id},
    )
    if updated:
        logger.info(f"Checkout reference issued: order_id={order_id} session_id={session_id}")
        return True

    if not await order_store.get(order_id):
        raise OrderNotFound(order_id)
    logger.info(f"Checkout reference not recorded, order {order_id} already paid")
    return False


async def record_payment_confirmation(
    order_id: str,
    payment_status: Optional[str],
    payment_provider: Optional[str],
    payment_session_id: Optional[str],
) -> ConfirmationOutcome:
    """
    Reconcile a payment confirmation event against the ledger. Idempotent.

    Never raises for unknown or already-paid orders: those events are logged
    and reported as ignored outcomes.
    """
    changes = {
        "paid": True,
        "payment_status": payment_status or PaymentStatus.PAID.value,
        "payment_provider": payment_provider or DEFAULT_PAYMENT_PROVIDER,
        "paid_at": datetime.now(timezone.utc),
    }
    # Keep the checkout reference when the event carries no session id
    if payment_session_id:
        changes["payment_session_id"] = payment_session_id
    updated = await order_store.update_if(order_id, {"paid": {"$ne": True}}, changes)
    if updated:
        logger.info(
            "PAYMENT_CONFIRMED order_id=%s provider=%s session_id=%s status=%s",
            order_id, payment_provider, payment_session_id, payment_status,
        )
        return ConfirmationOutcome.APPLIED

    existing = await order_store.get(order_id)
    if not existing:
        logger.warning(
            "PAYMENT_CONFIRMATION_IGNORED reason=unknown_order order_id=%s session_id=%s",
            order_id, payment_session_id,
        )
        return ConfirmationOutcome.IGNORED_UNKNOWN_ORDER

    stored_session = existing.get("payment_session_id")
    if payment_session_id and stored_session and stored_session != payment_session_id:
        # Kept as-is; surfaced for manual review of a possible double charge
        logger.warning(
            "PAYMENT_CONFIRMATION_SESSION_MISMATCH order_id=%s stored_session_id=%s incoming_session_id=%s",
            order_id, stored_session, payment_session_id,
        )
    else:
        logger.info(
            "PAYMENT_CONFIRMATION_IGNORED reason=already_paid order_id=%s session_id=%s",
            order_id, payment_session_id,
        )
    return ConfirmationOutcome.IGNORED_ALREADY_PAID


async def authorize_download(order_id: str) -> Tuple[ResumeData, TemplateVariant]:
    """
    Paywall gate. Returns the stored resume data and template only for paid orders.
    Raises OrderNotFound or PaymentRequired.
    """
    order = await get_order(order_id)
    if order.get("paid") is not True:
        logger.info(f"Download denied for unpaid order {order_id}")
        raise PaymentRequired(order_id)

    stored = order.get("data")
    resume_data = ResumeData.model_validate(stored if isinstance(stored, dict) else {})
    return resume_data, normalize_template_variant(order.get("template"))


async def list_recent_orders(limit: int = 100) -> List[Dict[str, Any]]:
    """Newest orders first, for the admin panel."""
    return await order_store.list_recent(limit)


def serialize_order(order: Dict[str, Any]) -> Dict[str, Any]:
    """Public view of an order record."""
    view = dict(order)
    view["price_display"] = format_minor_units(order.get("price", 0))
    return view
