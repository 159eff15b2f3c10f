"""Stripe Webhook Service - payment confirmation events for resume orders.

Key Principles:
1. Signature verification: events are verified with STRIPE_WEBHOOK_SECRET
2. At-least-once delivery: duplicates are absorbed by the ledger's
   update-if-unpaid, never by checks in this module
3. Unknown orders are acknowledged (200) and logged, never retried

Events Handled:
- checkout.session.completed (card payments arrive here already paid)
- checkout.session.async_payment_succeeded (delayed payment methods)
"""
import json
import stripe
import os
import logging
from typing import Dict, Any, Optional, Tuple

from services.order_ledger import record_payment_confirmation

logger = logging.getLogger(__name__)

_stripe_key = (os.getenv("STRIPE_SECRET_KEY") or os.getenv("STRIPE_API_KEY") or "").strip()
stripe.api_key = _stripe_key

PAYMENT_PROVIDER = "stripe"
SETTLED_PAYMENT_STATUSES = {"paid", "no_payment_required"}


# Webhook secret: support test vs live. If STRIPE_WEBHOOK_SECRET is set, use it; else choose by key prefix.
def _get_webhook_secret() -> str:
    explicit = (os.getenv("STRIPE_WEBHOOK_SECRET") or "").strip()
    if explicit:
        return explicit
    key = (os.getenv("STRIPE_SECRET_KEY") or os.getenv("STRIPE_API_KEY") or "").strip()
    if key.startswith("sk_live_"):
        return (os.getenv("STRIPE_WEBHOOK_SECRET_LIVE") or "").strip()
    if key.startswith("sk_test_"):
        return (os.getenv("STRIPE_WEBHOOK_SECRET_TEST") or "").strip()
    return ""


def _order_id_from_session(session: Dict[str, Any]) -> Optional[str]:
    metadata = session.get("metadata") or {}
    # orderId: sessions created by the first version of the checkout route
    return metadata.get("order_id") or metadata.get("orderId") or session.get("client_reference_id")


class StripeWebhookService:
    """Stripe webhook handler feeding payment confirmations into the order ledger."""

    async def process_webhook(
        self,
        payload: bytes,
        signature: str
    ) -> Tuple[bool, str, Optional[Dict]]:
        """
        Main webhook entry point.

        Returns:
            (success, message, details) - success is False only for events
            that failed verification or could not be parsed.
        """
        webhook_secret = _get_webhook_secret()
        try:
            if webhook_secret:
                stripe.Webhook.construct_event(payload, signature, webhook_secret)
            else:
                logger.warning("STRIPE_WEBHOOK_SECRET (or _TEST/_LIVE) not set - skipping signature verification")
            event = json.loads(payload)
        except stripe.SignatureVerificationError as e:
            logger.error("Webhook signature verification failed: %s (check STRIPE_WEBHOOK_SECRET vs Stripe key mode)", e)
            return False, "Invalid signature", {"error": str(e)}
        except ValueError as e:
            logger.error(f"Webhook parse error: {e}")
            return False, "Invalid payload", {"error": str(e)}
        if not isinstance(event, dict):
            return False, "Invalid payload", {"error": "event must be a JSON object"}

        event_id = event.get("id")
        event_type = event.get("type")
        logger.info("WEBHOOK_RECEIVED event_id=%s event_type=%s livemode=%s", event_id, event_type, event.get("livemode"))

        result = await self._handle_event(event)
        logger.info(
            "WEBHOOK_PROCESSED_OK event_id=%s event_type=%s order_id=%s outcome=%s",
            event_id, event_type, result.get("order_id"), result.get("outcome"),
        )
        return True, "Processed", {"event_id": event_id, **result}

    # =========================================================================
    # Event Handlers
    # =========================================================================

    async def _handle_event(self, event: Dict) -> Dict:
        """Route event to appropriate handler."""
        event_type = event.get("type")
        data = (event.get("data") or {}).get("object") or {}

        handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "checkout.session.async_payment_succeeded": self._handle_checkout_completed,
        }

        handler = handlers.get(event_type)
        if handler:
            return await handler(data, event)

        logger.info(f"Ignoring unhandled event type: {event_type}")
        return {"handled": False, "event_type": event_type}

    async def _handle_checkout_completed(self, session: Dict, event: Dict) -> Dict:
        """Confirm payment for the order referenced by the checkout session."""
        order_id = _order_id_from_session(session)
        session_id = session.get("id")
        payment_status = session.get("payment_status")

        if not order_id:
            logger.warning(f"Checkout session {session_id} has no order_id metadata - ignoring")
            return {"handled": False, "reason": "missing_order_id", "session_id": session_id}

        if payment_status not in SETTLED_PAYMENT_STATUSES:
            # Delayed methods complete the session first and settle later
            logger.info(f"Checkout session {session_id} for {order_id} not settled yet (payment_status={payment_status})")
            return {"handled": False, "reason": "payment_not_settled", "order_id": order_id}

        outcome = await record_payment_confirmation(
            order_id=order_id,
            payment_status=payment_status,
            payment_provider=PAYMENT_PROVIDER,
            payment_session_id=session_id,
        )
        return {"handled": True, "order_id": order_id, "outcome": outcome.value}


stripe_webhook_service = StripeWebhookService()
