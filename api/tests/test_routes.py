"""
Route tests through FastAPI's TestClient: the webhook endpoint's HTTP
contract and the checkout glue endpoints.
"""

from unittest.mock import AsyncMock

import pytest
import stripe
from fastapi.testclient import TestClient

from app import app
from services.notification_dispatcher import build_notification_dispatcher, get_notification_dispatcher
from services.session_idempotency_service import SessionIdempotencyGuard
from services.shopify_order_client import ShopifyOrderClient
from services.stripe_payment_processor import StripePaymentProcessor, get_stripe_payment_processor
from stripe_test_helpers import (
  TEST_WEBHOOK_SECRET,
  build_event_body,
  build_line_item,
  build_session,
  fake_stripe_client,
  shopify_transport,
  sign_stripe_payload,
  snapshot_of,
)


@pytest.fixture
def client():
  yield TestClient(app)
  app.dependency_overrides.clear()


def _install_dispatcher(stripe_client, shopify_mock):
  processor = StripePaymentProcessor(
    secret_key="sk_test_123",
    webhook_secret=TEST_WEBHOOK_SECRET,
    stripe_client=stripe_client,
  )
  dispatcher = build_notification_dispatcher(
    payment_processor=processor,
    shopify_client=ShopifyOrderClient(shop_url="https://shop.example.com", admin_token="shpat_test", transport=shopify_mock),
    idempotency_guard=SessionIdempotencyGuard(ttl_seconds=60),
  )
  app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
  return dispatcher


def _install_processor(processor):
  app.dependency_overrides[get_stripe_payment_processor] = lambda: processor


# ===================================================================
# POST /webhook
# ===================================================================

class TestWebhookEndpoint:

  def test_wrong_method_is_405(self, client):
    assert client.get("/webhook").status_code == 405
    assert client.put("/api/webhook", content=b"{}").status_code == 405

  def test_missing_signature_is_400(self, client):
    _install_dispatcher(fake_stripe_client(build_session()), shopify_transport())
    response = client.post("/webhook", content=build_event_body(snapshot_of(build_session())))
    assert response.status_code == 400
    assert response.json()["received"] is False

  def test_non_ascii_signature_header_is_400(self, client):
    shopify_mock = shopify_transport()
    _install_dispatcher(fake_stripe_client(build_session()), shopify_mock)
    raw_body = build_event_body(snapshot_of(build_session()))

    response = client.post(
      "/webhook",
      content=raw_body,
      headers={"Stripe-Signature": b"t=1700000000,v1=\xe9\xe9"},
    )

    assert response.status_code == 400
    assert response.json()["received"] is False
    assert shopify_mock.requests_seen == []

  def test_signed_event_with_malformed_data_is_400(self, client):
    _install_dispatcher(fake_stripe_client(build_session()), shopify_transport())
    raw_body = b'{"id": "evt_1", "type": "checkout.session.completed", "data": ["not", "an", "object"]}'
    response = client.post("/webhook", content=raw_body, headers={"Stripe-Signature": sign_stripe_payload(raw_body)})
    assert response.status_code == 400

  def test_valid_notification_is_200_and_creates_order(self, client):
    session = build_session()
    shopify_mock = shopify_transport()
    _install_dispatcher(fake_stripe_client(session), shopify_mock)
    raw_body = build_event_body(snapshot_of(session))

    response = client.post(
      "/webhook",
      content=raw_body,
      headers={"Stripe-Signature": sign_stripe_payload(raw_body), "Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "status": "submitted"}
    assert len(shopify_mock.requests_seen) == 1

  def test_serverless_path_is_served_too(self, client):
    session = build_session()
    _install_dispatcher(fake_stripe_client(session), shopify_transport())
    raw_body = build_event_body(snapshot_of(session))
    response = client.post("/api/webhook", content=raw_body, headers={"Stripe-Signature": sign_stripe_payload(raw_body)})
    assert response.status_code == 200

  def test_downstream_failure_is_still_200(self, client):
    session = build_session()
    _install_dispatcher(fake_stripe_client(session), shopify_transport(status_code=500, response_json={"errors": "x"}))
    raw_body = build_event_body(snapshot_of(session))

    response = client.post("/webhook", content=raw_body, headers={"Stripe-Signature": sign_stripe_payload(raw_body)})

    assert response.status_code == 200
    assert response.json()["status"] == "submission_failed"

  def test_unreachable_stripe_is_503(self, client):
    session = build_session()
    _install_dispatcher(fake_stripe_client(error=stripe.APIConnectionError("Network error", should_retry=True)), shopify_transport())
    raw_body = build_event_body(snapshot_of(session))
    response = client.post("/webhook", content=raw_body, headers={"Stripe-Signature": sign_stripe_payload(raw_body)})
    assert response.status_code == 503


# ===================================================================
# POST /create-checkout-session
# ===================================================================

class TestCreateCheckoutSessionEndpoint:

  def _items(self):
    return [{
      "price_data": {"currency": "pln", "product_data": {"name": "Wool Scarf"}, "unit_amount": 12900},
      "quantity": 1,
    }]

  def test_missing_items_is_400(self, client):
    _install_processor(AsyncMock())
    response = client.post("/create-checkout-session", json={"items": [], "total_amount": 12900})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing items or total amount."}

  def test_missing_total_is_400(self, client):
    _install_processor(AsyncMock())
    response = client.post("/create-checkout-session", json={"items": self._items()})
    assert response.status_code == 400

  def test_non_integer_total_is_400(self, client):
    _install_processor(AsyncMock())
    response = client.post("/create-checkout-session", json={"items": self._items(), "total_amount": "129.00"})
    assert response.status_code == 400

  def test_returns_hosted_url(self, client):
    processor = AsyncMock()
    processor.create_checkout_session.return_value = {"id": "cs_test_9", "url": "https://checkout.stripe.com/c/pay/cs_test_9"}
    _install_processor(processor)

    response = client.post(
      "/create-checkout-session",
      json={"items": self._items(), "total_amount": 12900, "customer_email": "jan@example.com"},
    )

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.com/c/pay/cs_test_9"}
    session_params = processor.create_checkout_session.await_args.args[0]
    assert session_params["payment_method_types"] == ["p24"]
    assert session_params["customer_email"] == "jan@example.com"
    assert len(session_params["shipping_options"]) == 2

  def test_stripe_error_is_500_with_message(self, client):
    processor = AsyncMock()
    processor.create_checkout_session.side_effect = stripe.InvalidRequestError(
      "Invalid currency: usd", param="currency", http_status=400,
    )
    _install_processor(processor)

    api_response = client.post("/create-checkout-session", json={"items": self._items(), "total_amount": 12900})

    assert api_response.status_code == 500
    assert api_response.json() == {"error": "Invalid currency: usd"}


# ===================================================================
# GET /order-details
# ===================================================================

class TestOrderDetailsEndpoint:

  def test_missing_session_id_is_400(self, client):
    _install_processor(AsyncMock())
    response = client.get("/order-details")
    assert response.status_code == 400
    assert response.json() == {"error": "Missing session_id"}

  def test_returns_session_summary(self, client):
    session = build_session(
      line_items=[build_line_item(5000, 2, description="Wool Scarf")],
      shipping_cost={
        "amount_total": 2000,
        "shipping_rate": {"display_name": "DPD – Dostawa standardowa", "fixed_amount": {"amount": 2000}},
      },
    )
    processor = AsyncMock()
    processor.retrieve_checkout_session.return_value = session
    _install_processor(processor)

    response = client.get("/order-details", params={"session_id": "cs_test_1"})

    assert response.status_code == 200
    details = response.json()
    assert details["customer_email"] == "jan@example.com"
    assert details["amount_total"] == 5000
    assert details["shipping_option"] == "DPD – Dostawa standardowa"
    assert details["shipping_cost"] == 2000
    assert details["shipping_address"]["city"] == "Gdańsk"
    assert details["payment_status"] == "paid"
    assert details["items"] == [{"description": "Wool Scarf", "quantity": 2}]

  def test_stripe_failure_is_500(self, client):
    processor = AsyncMock()
    processor.retrieve_checkout_session.side_effect = stripe.APIConnectionError("Network error")
    _install_processor(processor)
    response = client.get("/order-details", params={"session_id": "cs_x"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to retrieve order details"}


# ===================================================================
# Liveness
# ===================================================================

class TestLiveness:

  def test_root_text(self, client):
    response = client.get("/")
    assert response.status_code == 200
    assert "working" in response.text

  def test_health(self, client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
