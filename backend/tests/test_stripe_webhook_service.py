"""
Stripe webhook handling: signature check, event routing and ledger hand-off.

- Invalid signature -> (False, "Invalid signature") and 400 at the route.
- checkout.session.completed with paid status -> record_payment_confirmation.
- Unsettled sessions, unknown event types and missing order ids are acknowledged and ignored.
"""
import hashlib
import hmac
import json
import time
import pytest
from unittest.mock import AsyncMock, patch

WEBHOOK_SECRET = "whsec_test_secret"


def _event(event_type="checkout.session.completed", **session):
    obj = {"id": "cs_1", "payment_status": "paid", "metadata": {"order_id": "ORD-1-ABC"}}
    obj.update(session)
    return {"id": "evt_1", "type": event_type, "livemode": False, "data": {"object": obj}}


def _signed(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def no_secret(monkeypatch):
    for name in ("STRIPE_WEBHOOK_SECRET", "STRIPE_WEBHOOK_SECRET_TEST", "STRIPE_WEBHOOK_SECRET_LIVE",
                 "STRIPE_SECRET_KEY", "STRIPE_API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def with_secret(no_secret, monkeypatch):
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)


class TestProcessWebhook:

    @pytest.mark.asyncio
    async def test_paid_checkout_confirms_order(self, with_secret):
        from services.stripe_webhook_service import StripeWebhookService
        from services.order_ledger import ConfirmationOutcome

        payload = json.dumps(_event()).encode("utf-8")
        with patch("services.stripe_webhook_service.record_payment_confirmation",
                   new_callable=AsyncMock, return_value=ConfirmationOutcome.APPLIED) as confirm:
            success, message, details = await StripeWebhookService().process_webhook(payload, _signed(payload))

        assert success is True
        assert details["outcome"] == "APPLIED"
        confirm.assert_awaited_once_with(
            order_id="ORD-1-ABC",
            payment_status="paid",
            payment_provider="stripe",
            payment_session_id="cs_1",
        )

    @pytest.mark.asyncio
    async def test_bad_signature_is_rejected_before_ledger(self, with_secret):
        from services.stripe_webhook_service import StripeWebhookService

        payload = json.dumps(_event()).encode("utf-8")
        with patch("services.stripe_webhook_service.record_payment_confirmation",
                   new_callable=AsyncMock) as confirm:
            success, message, _ = await StripeWebhookService().process_webhook(
                payload, _signed(payload, secret="whsec_other")
            )

        assert success is False
        assert message == "Invalid signature"
        confirm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unverified_mode_parses_payload(self, no_secret):
        from services.stripe_webhook_service import StripeWebhookService
        from services.order_ledger import ConfirmationOutcome

        payload = json.dumps(_event()).encode("utf-8")
        with patch("services.stripe_webhook_service.record_payment_confirmation",
                   new_callable=AsyncMock, return_value=ConfirmationOutcome.IGNORED_ALREADY_PAID):
            success, _, details = await StripeWebhookService().process_webhook(payload, "")

        assert success is True
        assert details["outcome"] == "IGNORED_ALREADY_PAID"

    @pytest.mark.asyncio
    async def test_garbage_payload_is_invalid(self, no_secret):
        from services.stripe_webhook_service import StripeWebhookService

        success, message, _ = await StripeWebhookService().process_webhook(b"not json", "")
        assert success is False
        assert message == "Invalid payload"

    @pytest.mark.asyncio
    async def test_non_object_payload_is_invalid(self, no_secret):
        from services.stripe_webhook_service import StripeWebhookService

        success, message, _ = await StripeWebhookService().process_webhook(b"[1, 2]", "")
        assert success is False
        assert message == "Invalid payload"


class TestEventRouting:

    @pytest.mark.asyncio
    async def test_unsettled_payment_is_not_confirmed(self, no_secret):
        from services.stripe_webhook_service import StripeWebhookService

        with patch("services.stripe_webhook_service.record_payment_confirmation",
                   new_callable=AsyncMock) as confirm:
            result = await StripeWebhookService()._handle_event(_event(payment_status="unpaid"))

        assert result["handled"] is False
        assert result["reason"] == "payment_not_settled"
        confirm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_async_payment_succeeded_confirms(self, no_secret):
        from services.stripe_webhook_service import StripeWebhookService
        from services.order_ledger import ConfirmationOutcome

        with patch("services.stripe_webhook_service.record_payment_confirmation",
                   new_callable=AsyncMock, return_value=ConfirmationOutcome.APPLIED) as confirm:
            result = await StripeWebhookService()._handle_event(
                _event("checkout.session.async_payment_succeeded")
            )

        assert result["handled"] is True
        confirm.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_legacy_order_id_metadata_and_client_reference(self, no_secret):
        from services.stripe_webhook_service import StripeWebhookService
        from services.order_ledger import ConfirmationOutcome

        with patch("services.stripe_webhook_service.record_payment_confirmation",
                   new_callable=AsyncMock, return_value=ConfirmationOutcome.APPLIED) as confirm:
            await StripeWebhookService()._handle_event(_event(metadata={"orderId": "ORD-legacy"}))
            await StripeWebhookService()._handle_event(_event(metadata={}, client_reference_id="ORD-ref"))

        order_ids = [call.kwargs["order_id"] for call in confirm.await_args_list]
        assert order_ids == ["ORD-legacy", "ORD-ref"]

    @pytest.mark.asyncio
    async def test_missing_order_id_is_ignored(self, no_secret):
        from services.stripe_webhook_service import StripeWebhookService

        with patch("services.stripe_webhook_service.record_payment_confirmation",
                   new_callable=AsyncMock) as confirm:
            result = await StripeWebhookService()._handle_event(_event(metadata={}))

        assert result == {"handled": False, "reason": "missing_order_id", "session_id": "cs_1"}
        confirm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_event_types_are_acknowledged(self, no_secret):
        from services.stripe_webhook_service import StripeWebhookService

        result = await StripeWebhookService()._handle_event({"type": "invoice.paid", "data": {"object": {}}})
        assert result == {"handled": False, "event_type": "invoice.paid"}


class TestWebhookRoute:

    def test_invalid_signature_is_400(self, client, with_secret):
        response = client.post(
            "/api/webhooks/stripe",
            content=json.dumps(_event()).encode("utf-8"),
            headers={"Stripe-Signature": "t=1,v1=deadbeef", "Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_unknown_order_is_acknowledged(self, client, no_secret, orders_collection):
        response = client.post("/api/webhook/stripe", json=_event(metadata={"order_id": "ORD-ghost"}))

        assert response.status_code == 200
        assert response.json()["details"]["outcome"] == "IGNORED_UNKNOWN_ORDER"
        assert orders_collection.docs == []

    def test_handler_crash_still_returns_200(self, client, no_secret):
        with patch("routes.webhooks.stripe_webhook_service.process_webhook",
                   new_callable=AsyncMock, side_effect=RuntimeError("boom")):
            response = client.post("/api/webhooks/stripe", json=_event())

        assert response.status_code == 200
        assert response.json()["status"] == "error"
