"""
Stripe-Shopify Bridge -- Stripe Payment Processor

Stripe API integration through the official stripe library, using a
StripeClient with the httpx backend so every call can be awaited.

Calls used:
  checkout.sessions.create_async             -- create hosted checkout session
  checkout.sessions.retrieve_async           -- retrieve session (with expand)
  checkout.sessions.line_items.list_async    -- remaining line item pages

Webhook signatures are verified with stripe.Webhook (see
webhook_signature_service).
"""

import logging

import httpx
import stripe

import config
from services import webhook_signature_service
from services.payment_processor_interface import PaymentProcessorInterface

logger = logging.getLogger("bridge.stripe")

SESSION_EXPANSIONS = [
  "line_items",
  "line_items.data.price.product",
  "shipping_cost.shipping_rate",
]

LINE_ITEM_PAGE_SIZE = 100


class StripePaymentProcessor(PaymentProcessorInterface):
  """Stripe Checkout payment processor."""

  def __init__(
    self,
    secret_key=None,
    webhook_secret=None,
    api_base_url=None,
    api_version=None,
    timeout_seconds=None,
    webhook_tolerance_seconds=None,
    stripe_client=None,
  ):
    self.secret_key = secret_key if secret_key is not None else config.STRIPE_SECRET_KEY
    self.webhook_secret = webhook_secret if webhook_secret is not None else config.STRIPE_WEBHOOK_SECRET
    self.api_base_url = api_base_url or config.STRIPE_API_BASE_URL
    self.api_version = api_version or config.STRIPE_API_VERSION
    self.timeout_seconds = timeout_seconds or config.STRIPE_REQUEST_TIMEOUT_SECONDS
    self.webhook_tolerance_seconds = (
      webhook_tolerance_seconds
      if webhook_tolerance_seconds is not None
      else config.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS
    )
    # Built on first use; tests pass a stand-in
    self._stripe_client = stripe_client

  @property
  def stripe_client(self):
    if self._stripe_client is None:
      self._stripe_client = stripe.StripeClient(
        self.secret_key,
        stripe_version=self.api_version,
        base_addresses={"api": self.api_base_url},
        max_network_retries=0,
        http_client=stripe.HTTPXClient(timeout=httpx.Timeout(self.timeout_seconds)),
      )
    return self._stripe_client

  # -----------------------------------------------------------------------
  # Create checkout session
  # -----------------------------------------------------------------------

  async def create_checkout_session(self, session_params):
    session = await self.stripe_client.checkout.sessions.create_async(params=session_params)
    session = session.to_dict()

    logger.info(
      "Stripe checkout session created: session_id=%s, amount_total=%s",
      session.get("id"), session.get("amount_total"),
    )
    return session

  # -----------------------------------------------------------------------
  # Retrieve session (authoritative, expanded)
  # -----------------------------------------------------------------------

  async def retrieve_checkout_session(self, session_id):
    session = await self.stripe_client.checkout.sessions.retrieve_async(
      session_id,
      params={"expand": list(SESSION_EXPANSIONS)},
    )
    session = session.to_dict()

    line_items = session.get("line_items") or {}
    if line_items.get("has_more"):
      line_items = dict(line_items)
      line_items["data"] = await self._fetch_all_line_items(session_id)
      line_items["has_more"] = False
      session["line_items"] = line_items

    logger.info(
      "Stripe session retrieved: session_id=%s, payment_status=%s, line_items=%d",
      session_id,
      session.get("payment_status"),
      len((session.get("line_items") or {}).get("data") or []),
    )
    return session

  async def _fetch_all_line_items(self, session_id):
    """Every line item of the session, following Stripe's list pagination."""
    first_page = await self.stripe_client.checkout.sessions.line_items.list_async(
      session_id,
      params={"limit": LINE_ITEM_PAGE_SIZE, "expand": ["data.price.product"]},
    )
    collected_line_items = []
    async for line_item in first_page.auto_paging_iter():
      collected_line_items.append(line_item.to_dict())
    return collected_line_items

  # -----------------------------------------------------------------------
  # Verify webhook
  # -----------------------------------------------------------------------

  def construct_event(self, raw_body, signature_header):
    return webhook_signature_service.construct_verified_event(
      raw_body,
      signature_header,
      self.webhook_secret,
      tolerance_seconds=self.webhook_tolerance_seconds,
    )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_stripe_processor_singleton = None


def get_stripe_payment_processor():
  """Get the Stripe payment processor singleton."""
  global _stripe_processor_singleton
  if _stripe_processor_singleton is None:
    _stripe_processor_singleton = StripePaymentProcessor()
  return _stripe_processor_singleton
