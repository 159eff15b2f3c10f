"""
Admin Routes - read-only order panel.
Guarded by a shared ADMIN_TOKEN passed as ?token= (no user accounts).
"""
from fastapi import APIRouter, HTTPException, Depends, status, Query
from typing import Optional
from services.order_ledger import list_recent_orders, serialize_order
import hmac
import logging
import os

logger = logging.getLogger(__name__)

ADMIN_ORDER_LIMIT = 100


def admin_token_guard(token: Optional[str] = Query(None, description="ADMIN_TOKEN")):
    """Reject the request unless ADMIN_TOKEN is configured and matches."""
    expected = (os.getenv("ADMIN_TOKEN") or "").strip()
    if not expected or not token or not hmac.compare_digest(token, expected):
        logger.warning("Admin access denied: missing or invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error_code": "UNAUTHORIZED", "message": "Não autorizado."},
        )


router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(admin_token_guard)])


@router.get("/orders")
async def list_orders(limit: int = Query(ADMIN_ORDER_LIMIT, ge=1, le=ADMIN_ORDER_LIMIT)):
    """Newest orders first."""
    orders = await list_recent_orders(limit)
    return [serialize_order(order) for order in orders]
