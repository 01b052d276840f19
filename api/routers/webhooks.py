"""
Stripe-Shopify Bridge -- Webhook Router

Receives Stripe notifications and relays paid checkout sessions to Shopify.

Stripe webhook: POST /webhook  (also POST /api/webhook)
  Events: checkout.session.completed, checkout.session.async_payment_succeeded
  (everything else is acknowledged and ignored)

Security:
  - The Stripe-Signature header is verified against the RAW body bytes.
    This route reads request.body() itself and never binds a JSON model,
    since any parse/re-encode changes the bytes and breaks the signature.
  - Duplicate deliveries for a session are collapsed (no second order).

Responses:
  200 -- verified (order submitted, degraded, failed downstream, or ignored)
  400 -- signature missing or invalid
  405 -- anything but POST
  503 -- Stripe or Shopify timed out; Stripe will redeliver
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from services.notification_dispatcher import get_notification_dispatcher

logger = logging.getLogger("bridge.webhooks")

router = APIRouter(tags=["webhooks"])


@router.post("/webhook")
@router.post("/api/webhook")
async def receive_stripe_webhook(request: Request, dispatcher=Depends(get_notification_dispatcher)):
  """
  Receive and process a Stripe notification.

  Returns 200 once the signature is valid, even if the Shopify order could
  not be created (operators reconcile from the logs).
  """
  # -- Read raw body for signature verification --
  raw_body = await request.body()
  signature_header = request.headers.get("stripe-signature")

  outcome = await dispatcher.handle_notification(raw_body, signature_header)

  logger.info(
    "Stripe webhook handled: event_type=%s, session_id=%s, state=%s, http_status=%d",
    outcome.event_type or "unknown", outcome.session_id or "unknown",
    outcome.state.value, outcome.http_status,
  )

  if outcome.http_status == 400:
    return JSONResponse(
      status_code=400,
      content={"received": False, "error": f"Webhook Error: {outcome.detail}"},
    )

  return JSONResponse(
    status_code=outcome.http_status,
    content={"received": outcome.http_status == 200, "status": outcome.state.value},
  )
