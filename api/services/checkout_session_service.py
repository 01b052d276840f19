"""
Stripe-Shopify Bridge -- Checkout Session Service

Shapes the storefront's cart into a Stripe Checkout Session request and
summarizes a finished session for the success page.

Shipping rules (PLN, DPD):
  total >= 150.00 zł  -> free delivery only
  otherwise           -> standard (20.00 zł) or express (35.00 zł)
"""

import logging

import config

logger = logging.getLogger("bridge.checkout")


def _fixed_amount_shipping_option(display_name, amount_minor, minimum_business_days, maximum_business_days):
  return {
    "shipping_rate_data": {
      "type": "fixed_amount",
      "fixed_amount": {"amount": amount_minor, "currency": config.CHECKOUT_CURRENCY},
      "display_name": display_name,
      "delivery_estimate": {
        "minimum": {"unit": "business_day", "value": minimum_business_days},
        "maximum": {"unit": "business_day", "value": maximum_business_days},
      },
    },
  }


def build_shipping_options(total_amount_minor):
  if total_amount_minor >= config.FREE_SHIPPING_THRESHOLD_MINOR:
    return [
      _fixed_amount_shipping_option("Darmowa dostawa DPD", 0, 3, 8),
    ]
  return [
    _fixed_amount_shipping_option(
      "DPD – Dostawa standardowa", config.STANDARD_SHIPPING_AMOUNT_MINOR, 3, 8,
    ),
    _fixed_amount_shipping_option(
      "DPD – Dostawa ekspresowa", config.EXPRESS_SHIPPING_AMOUNT_MINOR, 2, 5,
    ),
  ]


def validate_checkout_request(body):
  """
  Strict validation of the create-session body.
  Returns an error message, or None when the body is usable.
  """
  if not isinstance(body, dict):
    return "Request body must be a JSON object."
  items = body.get("items")
  if not isinstance(items, list) or not items:
    return "Missing items or total amount."
  total_amount = body.get("total_amount")
  if total_amount is None or total_amount == 0:
    return "Missing items or total amount."
  if isinstance(total_amount, bool) or not isinstance(total_amount, int) or total_amount < 0:
    return "total_amount must be a positive integer amount in minor units."
  return None


def build_checkout_session_params(items, customer_email, total_amount_minor):
  session_params = {
    "payment_method_types": list(config.CHECKOUT_PAYMENT_METHOD_TYPES),
    "mode": "payment",
    "shipping_address_collection": {
      "allowed_countries": list(config.CHECKOUT_ALLOWED_SHIPPING_COUNTRIES),
    },
    "shipping_options": build_shipping_options(total_amount_minor),
    "line_items": items,
    "success_url": config.CHECKOUT_SUCCESS_URL,
    "cancel_url": config.CHECKOUT_CANCEL_URL,
  }

  if isinstance(customer_email, str) and "@" in customer_email:
    session_params["customer_email"] = customer_email
  else:
    logger.info("Customer email not available, creating session without it")

  return session_params


def summarize_session_for_order_details(session):
  """The success page's view of a session."""
  customer_details = session.get("customer_details") or {}
  shipping_cost = session.get("shipping_cost") or {}
  shipping_rate = shipping_cost.get("shipping_rate")
  if not isinstance(shipping_rate, dict):
    shipping_rate = {}
  shipping_details = session.get("shipping_details") or session.get("shipping") or {}

  return {
    "customer_email": customer_details.get("email") or "Not provided",
    "amount_total": session.get("amount_total"),
    "shipping_option": shipping_rate.get("display_name") or "Not selected",
    "shipping_cost": (shipping_rate.get("fixed_amount") or {}).get("amount") or 0,
    "shipping_address": shipping_details.get("address") or "Not provided",
    "payment_status": session.get("payment_status"),
    "items": [
      {"description": item.get("description"), "quantity": item.get("quantity")}
      for item in (session.get("line_items") or {}).get("data") or []
    ],
  }
