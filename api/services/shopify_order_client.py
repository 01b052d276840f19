"""
Stripe-Shopify Bridge -- Shopify Admin API Client

Creates orders through the Shopify Admin REST API.
Authenticated with a static admin access token in X-Shopify-Access-Token.

Ref: https://shopify.dev/docs/api/admin-rest/2023-01/resources/order#post-orders
"""

import logging

import httpx

import config

logger = logging.getLogger("bridge.shopify")


class ShopifyOrderClient:
  """Thin wrapper over POST /admin/api/{version}/orders.json."""

  def __init__(
    self,
    shop_url=None,
    admin_token=None,
    api_version=None,
    timeout_seconds=None,
    transport=None,
  ):
    self.shop_url = (shop_url or config.SHOPIFY_SHOP_URL).rstrip("/")
    self.admin_token = admin_token if admin_token is not None else config.SHOPIFY_ADMIN_TOKEN
    self.api_version = api_version or config.SHOPIFY_API_VERSION
    self.timeout_seconds = timeout_seconds or config.SHOPIFY_REQUEST_TIMEOUT_SECONDS
    self.transport = transport

  @property
  def orders_endpoint(self):
    return f"{self.shop_url}/admin/api/{self.api_version}/orders.json"

  async def create_order(self, order_payload):
    """
    Create an order. order_payload is the full {"order": {...}} document.

    Returns: the created order dict (Shopify's "order" object).
    Raises httpx.HTTPStatusError / httpx.RequestError.
    """
    async with httpx.AsyncClient(
      timeout=httpx.Timeout(self.timeout_seconds),
      transport=self.transport,
    ) as http_client:
      response = await http_client.post(
        self.orders_endpoint,
        json=order_payload,
        headers={
          "X-Shopify-Access-Token": self.admin_token,
          "Content-Type": "application/json",
        },
      )
      response.raise_for_status()
      created_order = response.json().get("order") or {}

    logger.info(
      "Shopify order created: order_id=%s, name=%s",
      created_order.get("id"), created_order.get("name"),
    )
    return created_order
