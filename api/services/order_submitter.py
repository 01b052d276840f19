"""
Stripe-Shopify Bridge -- Order Submitter

Maps a CanonicalOrder onto the Shopify order schema and creates it.

Mapping rules:
  - shipping_address and billing_address are always the same block
  - financial_status is always "paid" (orders are only submitted after
    Stripe confirmed the payment)
  - tags and note come from the locale text
  - a variant-reference line item is sent as {variant_id, quantity, price};
    a free-text line item as {title, quantity, price, properties}

No retries here. A failed create call is logged with Shopify's error body
and raised as DownstreamSubmissionFailed; a timeout as UpstreamTimeout.
"""

import logging

import httpx

from services.bridge_errors import DownstreamSubmissionFailed, UpstreamTimeout
from services.canonical_order_models import SubmissionResult

logger = logging.getLogger("bridge.submitter")

SESSION_ID_NOTE_ATTRIBUTE = "stripe_checkout_session_id"


def _format_price(amount):
  return f"{amount:.2f}"


def map_address(order, address):
  return {
    "first_name": order.first_name,
    "last_name": order.last_name,
    "address1": address.line1,
    "address2": address.line2,
    "city": address.city,
    "province": address.region,
    "zip": address.postal_code,
    "country_code": address.country_code,
    "phone": address.phone,
  }


def map_line_item(item):
  if item.variant_id:
    return {
      "variant_id": int(item.variant_id) if item.variant_id.isdigit() else item.variant_id,
      "quantity": item.quantity,
      "price": _format_price(item.unit_price),
    }

  return {
    "title": item.title,
    "quantity": item.quantity,
    "price": _format_price(item.unit_price),
    "properties": [
      {"name": "Size", "value": item.size},
      {"name": "Color", "value": item.color},
    ],
  }


def map_canonical_order_to_shopify(order):
  """Build the {"order": {...}} document for POST orders.json."""
  address_block = map_address(order, order.shipping_address)

  shopify_order = {
    "email": order.email,
    "financial_status": "paid",
    "line_items": [map_line_item(item) for item in order.line_items],
    "shipping_address": address_block,
    "billing_address": dict(address_block),
    "note": order.note,
    "tags": ", ".join(order.tags),
    "note_attributes": [
      {"name": SESSION_ID_NOTE_ATTRIBUTE, "value": order.session_id},
    ],
  }

  if order.shipping_line is not None:
    shopify_order["shipping_lines"] = [{
      "title": order.shipping_line.title,
      "code": order.shipping_line.code,
      "price": _format_price(order.shipping_line.price),
    }]

  if order.currency:
    shopify_order["currency"] = order.currency

  return {"order": shopify_order}


def _error_body(response):
  try:
    return response.json()
  except ValueError:
    return response.text


class OrderSubmitter:
  """Submits CanonicalOrders to Shopify. Not idempotent by itself."""

  def __init__(self, shopify_client):
    self.shopify_client = shopify_client

  async def submit_order(self, order):
    """
    Create the Shopify order for a CanonicalOrder.

    Returns: SubmissionResult.
    Raises DownstreamSubmissionFailed or UpstreamTimeout.
    """
    order_payload = map_canonical_order_to_shopify(order)

    try:
      created_order = await self.shopify_client.create_order(order_payload)

    except httpx.TimeoutException as timeout_error:
      logger.error("Shopify order creation timed out: session_id=%s", order.session_id)
      raise UpstreamTimeout("shopify", session_id=order.session_id) from timeout_error

    except httpx.HTTPStatusError as status_error:
      error_body = _error_body(status_error.response)
      logger.error(
        "Shopify order creation failed: session_id=%s, status=%s, body=%s",
        order.session_id, status_error.response.status_code, error_body,
      )
      raise DownstreamSubmissionFailed(
        f"Shopify rejected the order (HTTP {status_error.response.status_code})",
        session_id=order.session_id,
        status_code=status_error.response.status_code,
        error_body=error_body,
      ) from status_error

    except httpx.RequestError as request_error:
      logger.error(
        "Shopify order creation failed: session_id=%s, error=%s",
        order.session_id, request_error,
      )
      raise DownstreamSubmissionFailed(
        f"Shopify request failed: {request_error}",
        session_id=order.session_id,
      ) from request_error

    downstream_order_id = created_order.get("id")
    if downstream_order_id is None:
      logger.error("Shopify response carried no order id: session_id=%s", order.session_id)
      raise DownstreamSubmissionFailed(
        "Shopify response carried no order id",
        session_id=order.session_id,
        error_body=created_order,
      )

    return SubmissionResult(
      session_id=order.session_id,
      downstream_order_id=str(downstream_order_id),
      downstream_order_name=created_order.get("name") or "",
    )
