"""Webhook Routes - Stripe payment confirmations.

POST /api/webhooks/stripe - Main Stripe webhook endpoint
POST /api/webhook/stripe - Alias for Stripe webhook (for backward compatibility)

Stripe delivers at-least-once. Everything except a failed signature check is
acknowledged with 200 so the provider does not retry; duplicates are absorbed
by the order ledger.
"""
from fastapi import APIRouter, Request, Header
from fastapi.responses import JSONResponse
from services.stripe_webhook_service import stripe_webhook_service
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["webhooks"])


async def _handle_stripe_webhook(request: Request, stripe_signature: str = None):
    """
    Core Stripe webhook handler.

    Handled Events:
    - checkout.session.completed
    - checkout.session.async_payment_succeeded
    """
    try:
        payload = await request.body()

        success, message, details = await stripe_webhook_service.process_webhook(
            payload=payload,
            signature=stripe_signature or ""
        )

        if success:
            return {"status": "received", "message": message, "details": details}
        if message == "Invalid signature":
            return JSONResponse(status_code=400, content={"status": "error", "message": message})
        # Still return 200 to prevent Stripe retries
        logger.error(f"Webhook processing failed: {message}")
        return {"status": "error", "message": message}

    except Exception as e:
        logger.exception(f"Stripe webhook error: {e}")
        # Return 200 to prevent Stripe retries - we've logged the error
        return {"status": "error", "message": str(e)}


@router.post("/api/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature")
):
    """Handle Stripe webhooks at /api/webhooks/stripe"""
    return await _handle_stripe_webhook(request, stripe_signature)


@router.post("/api/webhook/stripe")
async def stripe_webhook_alias(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature")
):
    """Handle Stripe webhooks at /api/webhook/stripe (alias)"""
    return await _handle_stripe_webhook(request, stripe_signature)
