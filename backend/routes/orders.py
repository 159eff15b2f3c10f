"""
Orders API Routes - resume order creation, checkout and paid PDF download.
Paths match the public site (create-order, order/{id}, checkout-session, pdf).
"""
from fastapi import APIRouter, HTTPException, Response, status
from models import CreateOrderRequest, ResumeData
from services.order_ledger import (
    OrderLedgerError, ValidationError, OrderNotFound, PaymentRequired,
    create_order, get_order, issue_checkout_reference, authorize_download,
    serialize_order,
)
from services.document_composer import ComposerError
from services.pdf_renderer import render_resume_pdf, pdf_filename
from services.stripe_service import stripe_service
from utils.public_app_url import payment_return_urls
import asyncio
import logging
import stripe

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["orders"])

LEDGER_ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    OrderNotFound: status.HTTP_404_NOT_FOUND,
    PaymentRequired: status.HTTP_403_FORBIDDEN,
}


def _ledger_http_error(e: OrderLedgerError) -> HTTPException:
    status_code = LEDGER_ERROR_STATUS.get(type(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = {"error_code": e.error_code, "message": e.message}
    if isinstance(e, ValidationError) and e.field:
        detail["field"] = e.field
    return HTTPException(status_code=status_code, detail=detail)


@router.post("/create-order", status_code=status.HTTP_201_CREATED)
async def create_new_order(request: CreateOrderRequest):
    """
    Create a new unpaid order from the resume form.
    Returns orderId for subsequent checkout.
    """
    resume_data = ResumeData.model_validate(
        request.model_dump(exclude={"template", "price"}, exclude_none=True)
    )
    try:
        order = await create_order(resume_data, template=request.template, price=request.price)
    except OrderLedgerError as e:
        logger.info(f"Order creation rejected: {e.message}")
        raise _ledger_http_error(e)

    return {
        "success": True,
        "message": "Pedido criado com sucesso.",
        "orderId": order["order_id"],
    }


@router.get("/order/{order_id}")
async def get_order_details(order_id: str):
    try:
        order = await get_order(order_id)
    except OrderLedgerError as e:
        raise _ledger_http_error(e)
    return serialize_order(order)


@router.post("/order/{order_id}/checkout-session")
async def create_order_checkout(order_id: str):
    """
    Create a Stripe checkout session for an unpaid order.
    Paid orders short-circuit with alreadyPaid instead of a second session.
    """
    try:
        order = await get_order(order_id)
    except OrderLedgerError as e:
        raise _ledger_http_error(e)

    if order.get("paid") is True:
        return {"success": True, "alreadyPaid": True, "message": "Pedido já pago."}

    try:
        success_url, cancel_url = payment_return_urls(order_id)
        session = stripe_service.create_checkout_session(
            order_id=order_id,
            price=order["price"],
            currency=order.get("currency", "BRL"),
            success_url=success_url,
            cancel_url=cancel_url,
        )
    except ValueError as e:
        logger.error(f"Checkout unavailable for {order_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error_code": "CHECKOUT_UNAVAILABLE", "message": "Pagamento indisponível no momento."},
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating checkout for {order_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error_code": "CHECKOUT_FAILED", "message": "Erro ao criar sessão de pagamento."},
        )

    try:
        recorded = await issue_checkout_reference(order_id, session.session_id)
    except OrderLedgerError as e:
        raise _ledger_http_error(e)
    if not recorded:
        # Confirmed while the session was being created
        return {"success": True, "alreadyPaid": True, "message": "Pedido já pago."}

    return {"success": True, "checkoutUrl": session.url}


@router.get("/order/{order_id}/pdf")
async def download_order_pdf(order_id: str):
    """Render the paid resume as PDF. 404 for unknown orders, 403 until payment is confirmed."""
    try:
        resume_data, variant = await authorize_download(order_id)
    except OrderLedgerError as e:
        raise _ledger_http_error(e)

    loop = asyncio.get_running_loop()
    try:
        pdf_bytes = await loop.run_in_executor(None, render_resume_pdf, resume_data, variant)
    except ComposerError as e:
        logger.error(f"PDF composition failed for {order_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error_code": "RENDER_FAILED", "message": "Erro ao gerar PDF."},
        )

    logger.info(f"PDF delivered for order {order_id} template={variant.value} bytes={len(pdf_bytes)}")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf_filename(resume_data)}"'},
    )
