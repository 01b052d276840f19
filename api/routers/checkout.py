"""
Stripe-Shopify Bridge -- Checkout Router

Storefront-facing glue over Stripe Checkout:
  POST /create-checkout-session  -- create a P24 session, return its hosted URL
  GET  /order-details            -- summary of a session for the success page

Both paths are also served under /api/ for the serverless deployment.
"""

import logging

import stripe
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from services import checkout_session_service
from services.stripe_payment_processor import get_stripe_payment_processor

logger = logging.getLogger("bridge.checkout_router")

router = APIRouter(tags=["checkout"])


def _stripe_error_message(stripe_error):
  """Stripe's own error message when it sent one."""
  return stripe_error.user_message or str(stripe_error)


@router.post("/create-checkout-session")
@router.post("/api/create-checkout-session")
async def create_checkout_session(request: Request, payment_processor=Depends(get_stripe_payment_processor)):
  """
  Create a Stripe Checkout Session for the cart.

  Request body (JSON):
    {
      "items": [{"price_data": {...}, "quantity": 1}, ...],
      "customer_email": "jan@example.com",   # optional
      "total_amount": 12900                  # minor units
    }

  Response: {"url": "https://checkout.stripe.com/..."}
  """
  try:
    body = await request.json()
  except ValueError:
    return JSONResponse(status_code=400, content={"error": "Request body must be valid JSON."})

  validation_error = checkout_session_service.validate_checkout_request(body)
  if validation_error:
    return JSONResponse(status_code=400, content={"error": validation_error})

  session_params = checkout_session_service.build_checkout_session_params(
    items=body["items"],
    customer_email=body.get("customer_email"),
    total_amount_minor=body["total_amount"],
  )

  try:
    session = await payment_processor.create_checkout_session(session_params)
  except stripe.StripeError as stripe_error:
    error_message = _stripe_error_message(stripe_error)
    logger.error("Stripe checkout error: %s", error_message)
    return JSONResponse(status_code=500, content={"error": error_message})

  return JSONResponse(status_code=200, content={"url": session.get("url")})


@router.get("/order-details")
@router.get("/api/order-details")
async def get_order_details(
  session_id: str = Query(default=""),
  payment_processor=Depends(get_stripe_payment_processor),
):
  """Order summary for the success page, read straight from Stripe."""
  if not session_id:
    return JSONResponse(status_code=400, content={"error": "Missing session_id"})

  try:
    session = await payment_processor.retrieve_checkout_session(session_id)
  except stripe.StripeError as stripe_error:
    logger.error("Order fetch error: session_id=%s, error=%s", session_id, stripe_error)
    return JSONResponse(status_code=500, content={"error": "Failed to retrieve order details"})

  return JSONResponse(
    status_code=200,
    content=checkout_session_service.summarize_session_for_order_details(session),
  )
