"""
Stripe-Shopify Bridge API

Stripe Checkout (Przelewy24) in front, Shopify orders behind.

Endpoints:
  /                                  -- liveness text
  /api/health                        -- health check
  /create-checkout-session           -- create a Stripe Checkout Session
  /order-details                     -- session summary for the success page
  /webhook                           -- Stripe notifications -> Shopify orders
  /api/docs                          -- Swagger UI documentation

Run with:
    uvicorn app:app --host 127.0.0.1 --port 3000
"""

import datetime
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

import config
from routers import checkout, webhooks

# --- Logging ---
logging.basicConfig(
  level=logging.INFO,
  format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger("bridge.api")

# --- FastAPI app ---
app = FastAPI(
  title="Stripe-Shopify Bridge API",
  description="Creates Stripe Checkout sessions and relays paid sessions "
              "to Shopify as orders.",
  version=config.API_VERSION,
  docs_url="/api/docs",
  redoc_url="/api/redoc",
  openapi_url="/api/openapi.json",
)

app.add_middleware(
  CORSMiddleware,
  allow_origins=config.CORS_ALLOWED_ORIGINS,
  allow_methods=["GET", "POST", "OPTIONS"],
  allow_headers=["Content-Type"],
)

# --- Register routers ---
app.include_router(webhooks.router)
app.include_router(checkout.router)


# --- Health and status ---

class HealthResponse(BaseModel):
  status: str
  service: str
  version: str
  timestamp: str
  stripe_configured: bool
  shopify_configured: bool


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
  """Health check endpoint for monitoring and load balancers."""
  return HealthResponse(
    status="healthy",
    service="stripe-shopify-bridge",
    version=config.API_VERSION,
    timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    stripe_configured=bool(config.STRIPE_SECRET_KEY and config.STRIPE_WEBHOOK_SECRET),
    shopify_configured=bool(config.SHOPIFY_ADMIN_TOKEN),
  )


@app.get("/", response_class=PlainTextResponse)
async def api_root():
  return "Shopify Stripe backend is working!"


if __name__ == "__main__":
  import uvicorn
  logger.info("Starting Stripe-Shopify Bridge API on %s:%d", config.API_HOST, config.API_PORT)
  uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
