"""
Stripe-Shopify Bridge -- Configuration

All configuration values with sensible defaults.
Override via environment variables (systemd unit or the hosting dashboard).
"""

import os

# --- API Settings ---
API_VERSION = "0.3.0"
API_HOST = os.environ.get("BRIDGE_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("BRIDGE_API_PORT", "3000"))

# Comma-separated list, "*" allows any storefront origin
CORS_ALLOWED_ORIGINS = [
  origin.strip()
  for origin in os.environ.get("BRIDGE_CORS_ORIGINS", "*").split(",")
  if origin.strip()
]

# --- Stripe REST API ---
# SECURITY: No hardcoded defaults -- must be set via environment variable
STRIPE_SECRET_KEY = os.environ.get("BRIDGE_STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.environ.get("BRIDGE_STRIPE_WEBHOOK_SECRET", "")
STRIPE_API_BASE_URL = os.environ.get("BRIDGE_STRIPE_API_URL", "https://api.stripe.com")
STRIPE_API_VERSION = os.environ.get("BRIDGE_STRIPE_API_VERSION", "2023-10-16")
STRIPE_REQUEST_TIMEOUT_SECONDS = float(os.environ.get("BRIDGE_STRIPE_TIMEOUT_SECONDS", "10"))

# Stripe-Signature timestamp tolerance (replay protection)
WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS = int(os.environ.get("BRIDGE_WEBHOOK_TOLERANCE_SECONDS", "300"))

# --- Shopify Admin REST API ---
SHOPIFY_SHOP_URL = os.environ.get("BRIDGE_SHOPIFY_SHOP_URL", "https://luxenordique.com")
SHOPIFY_API_VERSION = os.environ.get("BRIDGE_SHOPIFY_API_VERSION", "2023-01")
# SECURITY: No hardcoded default -- must be set via environment variable
SHOPIFY_ADMIN_TOKEN = os.environ.get("BRIDGE_SHOPIFY_ADMIN_TOKEN", "")
SHOPIFY_REQUEST_TIMEOUT_SECONDS = float(os.environ.get("BRIDGE_SHOPIFY_TIMEOUT_SECONDS", "15"))

# --- Order materialization ---
# Used when the session locale is missing, "auto", or not in the text table
DEFAULT_ORDER_LOCALE = os.environ.get("BRIDGE_DEFAULT_LOCALE", "pl")

# Duplicate notifications for the same session are collapsed within this window
SESSION_IDEMPOTENCY_TTL_SECONDS = int(os.environ.get("BRIDGE_IDEMPOTENCY_TTL_SECONDS", "86400"))

# --- Checkout session creation ---
CHECKOUT_PAYMENT_METHOD_TYPES = ["p24"]
CHECKOUT_ALLOWED_SHIPPING_COUNTRIES = ["PL"]
CHECKOUT_CURRENCY = "pln"
CHECKOUT_SUCCESS_URL = os.environ.get(
  "BRIDGE_CHECKOUT_SUCCESS_URL",
  "https://luxenordique.com/pages/success?session_id={CHECKOUT_SESSION_ID}",
)
CHECKOUT_CANCEL_URL = os.environ.get("BRIDGE_CHECKOUT_CANCEL_URL", "https://luxenordique.com/cart")

# Amounts in minor units (grosze)
FREE_SHIPPING_THRESHOLD_MINOR = 15000
STANDARD_SHIPPING_AMOUNT_MINOR = 2000
EXPRESS_SHIPPING_AMOUNT_MINOR = 3500
