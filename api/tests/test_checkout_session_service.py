"""
Tests for checkout_session_service.py -- cart -> Stripe Checkout Session
parameters, request validation and the success-page summary.
"""

import pytest

from services import checkout_session_service
from stripe_test_helpers import build_line_item, build_session


# ===================================================================
# Checkout session shaping
# ===================================================================

class TestCheckoutSessionService:

  def test_free_shipping_at_threshold(self):
    options = checkout_session_service.build_shipping_options(15000)
    assert len(options) == 1
    assert options[0]["shipping_rate_data"]["fixed_amount"]["amount"] == 0
    assert options[0]["shipping_rate_data"]["display_name"] == "Darmowa dostawa DPD"

  def test_paid_shipping_below_threshold(self):
    options = checkout_session_service.build_shipping_options(14999)
    amounts = [option["shipping_rate_data"]["fixed_amount"]["amount"] for option in options]
    assert amounts == [2000, 3500]

  def test_invalid_email_is_left_out(self):
    params = checkout_session_service.build_checkout_session_params([{"price": "price_1", "quantity": 1}], "not-an-email", 5000)
    assert "customer_email" not in params
    assert params["shipping_address_collection"] == {"allowed_countries": ["PL"]}

  @pytest.mark.parametrize("body", [
    {},
    {"items": [], "total_amount": 100},
    {"items": [{"price": "p"}]},
    {"items": [{"price": "p"}], "total_amount": 0},
    {"items": [{"price": "p"}], "total_amount": -5},
    {"items": [{"price": "p"}], "total_amount": 10.5},
    {"items": "p", "total_amount": 100},
    [],
  ])
  def test_invalid_requests_are_rejected(self, body):
    assert checkout_session_service.validate_checkout_request(body) is not None

  def test_valid_request_passes(self):
    assert checkout_session_service.validate_checkout_request({"items": [{"price": "p"}], "total_amount": 100}) is None


  def test_valid_email_is_attached(self):
    params = checkout_session_service.build_checkout_session_params([{"price": "price_1", "quantity": 1}], "jan@example.com", 5000)
    assert params["customer_email"] == "jan@example.com"
    assert params["payment_method_types"] == ["p24"]
    assert params["mode"] == "payment"


# ===================================================================
# Success page summary
# ===================================================================

class TestSummarizeSessionForOrderDetails:

  def test_summary_of_full_session(self):
    session = build_session(line_items=[build_line_item(5000, 2, description="Wool Scarf")])
    summary = checkout_session_service.summarize_session_for_order_details(session)
    assert summary["customer_email"] == "jan@example.com"
    assert summary["amount_total"] == 5000
    assert summary["shipping_address"]["postal_code"] == "80-831"
    assert summary["items"] == [{"description": "Wool Scarf", "quantity": 2}]

  def test_defaults_for_missing_fields(self):
    summary = checkout_session_service.summarize_session_for_order_details({"amount_total": 100})
    assert summary["customer_email"] == "Not provided"
    assert summary["shipping_option"] == "Not selected"
    assert summary["shipping_cost"] == 0
    assert summary["shipping_address"] == "Not provided"
    assert summary["items"] == []
