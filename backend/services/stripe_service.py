"""Stripe Service - Checkout session creation for resume orders.

Key Principles:
- One card payment per order (mode=payment, single line item)
- Amounts are passed in the currency's minor unit (centavos)
- Metadata carries order_id so the webhook can find the order
"""
import stripe
import os
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Initialize Stripe (no placeholder default; missing key fails at checkout with clear error)
stripe.api_key = (os.getenv("STRIPE_SECRET_KEY") or os.getenv("STRIPE_API_KEY") or "").strip()

PRODUCT_NAME = "Currículo Profissional em PDF"


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


class StripeService:
    """Stripe payment operations."""

    def create_checkout_session(
        self,
        order_id: str,
        price: int,
        currency: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """
        Create a Stripe Checkout session for one order.

        Args:
            order_id: Internal order ID (copied into session metadata)
            price: Amount in minor units
            currency: ISO currency code
            success_url / cancel_url: Redirect targets after checkout

        Raises:
            ValueError when no Stripe key is configured
            stripe.error.StripeError on provider failures
        """
        if not (stripe.api_key or "").strip():
            raise ValueError("STRIPE_SECRET_KEY or STRIPE_API_KEY is not set. Configure env and restart.")

        session = stripe.checkout.Session.create(
            mode="payment",
            payment_method_types=["card"],
            client_reference_id=order_id,
            line_items=[{
                "price_data": {
                    "currency": currency.lower(),
                    "product_data": {"name": PRODUCT_NAME},
                    "unit_amount": price,
                },
                "quantity": 1,
            }],
            metadata={"order_id": order_id},
            success_url=success_url,
            cancel_url=cancel_url,
        )

        logger.info(f"Stripe checkout session created: order_id={order_id} session_id={session.id}")
        return CheckoutSession(session_id=session.id, url=session.url)


stripe_service = StripeService()
