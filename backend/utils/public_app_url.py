"""
Canonical public frontend base URL for checkout redirects.
Use get_frontend_base_url() for ALL links back to the site. No other code should build frontend links directly.
"""
import os
import logging
from typing import Tuple
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

LOCAL_FRONTEND_URL = "http://localhost:3000"
PAYMENT_PAGE = "pagamento.html"


def get_frontend_base_url() -> str:
    """
    Return normalized public frontend base URL (no trailing slash).
    Fallback order: FRONTEND_BASE_URL, FRONTEND_PUBLIC_URL, VERCEL_URL (as https).

    Rules:
    - Result is stripped and trailing slash removed.
    - Outside localhost, http is upgraded to https.
    - In production a missing or localhost URL raises ValueError so checkout
      never redirects customers to a dead page.
    """
    raw = (
        (os.getenv("FRONTEND_BASE_URL") or "").strip()
        or (os.getenv("FRONTEND_PUBLIC_URL") or "").strip()
    )
    if not raw and os.getenv("VERCEL_URL"):
        raw = f"https://{os.getenv('VERCEL_URL', '').strip()}"
    raw = raw.rstrip("/")

    env = (os.getenv("ENVIRONMENT") or "").strip().lower()
    if not raw or "localhost" in raw.lower():
        if env in ("production", "prod"):
            raise ValueError(
                "FRONTEND_BASE_URL must be your public frontend URL in production (no localhost). "
                "Set FRONTEND_BASE_URL=https://<your-frontend-domain>"
            )
        return raw or LOCAL_FRONTEND_URL
    if raw.startswith("http://"):
        raw = "https://" + raw.split("://", 1)[1]
    return raw


def payment_return_urls(order_id: str) -> Tuple[str, str]:
    """(success_url, cancel_url) for the checkout of one order."""
    base = f"{get_frontend_base_url()}/{PAYMENT_PAGE}"
    success = urlencode({"orderId": order_id, "status": "success"})
    cancel = urlencode({"orderId": order_id, "status": "cancel"})
    return f"{base}?{success}", f"{base}?{cancel}"
