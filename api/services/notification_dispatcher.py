"""
Stripe-Shopify Bridge -- Notification Dispatcher

Runs one Stripe notification through the pipeline:

  Received -> Verified -> Normalized (or DegradedNormalized) -> Submitted
                 |                                       |
              Rejected                           SubmissionFailed

Once the signature checks out the caller is acknowledged with 200,
whatever happens downstream. A Shopify failure is not fixed by Stripe
redelivering the same notification, so it is logged for manual
reconciliation instead. Exceptions:
  - invalid signature -> 400 (Stripe retries, nothing was done)
  - Stripe/Shopify timeout -> 503 (a redelivery can succeed)
"""

import enum
import logging
from typing import Optional

from pydantic import BaseModel

from services.bridge_errors import (
  DownstreamSubmissionFailed,
  InvalidSessionData,
  InvalidSignature,
  UpstreamTimeout,
)
from services.canonical_order_models import CanonicalOrder
from services.order_submitter import OrderSubmitter
from services.session_idempotency_service import SessionIdempotencyGuard
from services.session_normalizer import SessionNormalizer
from services.shopify_order_client import ShopifyOrderClient
from services.stripe_payment_processor import get_stripe_payment_processor

logger = logging.getLogger("bridge.dispatcher")

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
MATERIALIZED_EVENT_TYPES = {EVENT_CHECKOUT_COMPLETED, EVENT_ASYNC_PAYMENT_SUCCEEDED}


class NotificationState(str, enum.Enum):
  RECEIVED = "received"
  VERIFIED = "verified"
  NORMALIZED = "normalized"
  DEGRADED_NORMALIZED = "degraded_normalized"
  SUBMITTED = "submitted"
  REJECTED = "rejected"
  SUBMISSION_FAILED = "submission_failed"
  # Verified but nothing to materialize
  IGNORED = "ignored"
  AWAITING_PAYMENT = "awaiting_payment"
  DUPLICATE = "duplicate"
  UPSTREAM_TIMEOUT = "upstream_timeout"


class NotificationOutcome(BaseModel):
  state: NotificationState
  http_status: int
  event_type: str = ""
  session_id: str = ""
  downstream_order_id: Optional[str] = None
  degraded: bool = False
  detail: str = ""
  order: Optional[CanonicalOrder] = None


class NotificationDispatcher:
  """Ties the signature check, normalizer and submitter together."""

  def __init__(self, payment_processor, session_normalizer, order_submitter, idempotency_guard=None):
    self.payment_processor = payment_processor
    self.session_normalizer = session_normalizer
    self.order_submitter = order_submitter
    self.idempotency_guard = idempotency_guard or SessionIdempotencyGuard()

  async def handle_notification(self, raw_body, signature_header):
    """
    Process one notification.

    Args:
      raw_body: Exact request body bytes.
      signature_header: Stripe-Signature header value (may be None).

    Returns: NotificationOutcome. Never raises for downstream failures.
    """
    # -- Verify --
    try:
      event = self.payment_processor.construct_event(raw_body, signature_header)
    except InvalidSignature as signature_error:
      logger.warning("Stripe notification rejected: %s", signature_error)
      return NotificationOutcome(
        state=NotificationState.REJECTED,
        http_status=400,
        detail=str(signature_error),
      )

    session_id = event.session_id
    logger.info(
      "Stripe notification verified: event_id=%s, event_type=%s, session_id=%s",
      event.event_id, event.event_type, session_id,
    )

    if event.event_type not in MATERIALIZED_EVENT_TYPES:
      logger.info("Stripe notification ignored: event_type=%s", event.event_type)
      return NotificationOutcome(
        state=NotificationState.IGNORED,
        http_status=200,
        event_type=event.event_type,
        session_id=session_id,
      )

    payment_status = event.data_object.get("payment_status")
    if payment_status != "paid":
      # Delayed methods complete the session unpaid; async_payment_succeeded follows
      logger.info(
        "Checkout session not paid yet: session_id=%s, payment_status=%s",
        session_id, payment_status,
      )
      return NotificationOutcome(
        state=NotificationState.AWAITING_PAYMENT,
        http_status=200,
        event_type=event.event_type,
        session_id=session_id,
      )

    if not self.idempotency_guard.claim(session_id):
      return NotificationOutcome(
        state=NotificationState.DUPLICATE,
        http_status=200,
        event_type=event.event_type,
        session_id=session_id,
        detail=f"session already {self.idempotency_guard.status_of(session_id)}",
      )

    return await self._materialize_and_submit(event)

  async def _materialize_and_submit(self, event):
    session_id = event.session_id
    state = NotificationState.VERIFIED
    order = None

    try:
      order = await self.session_normalizer.materialize_canonical_order(event)
      state = NotificationState.DEGRADED_NORMALIZED if order.degraded else NotificationState.NORMALIZED

      submission = await self.order_submitter.submit_order(order)

    except UpstreamTimeout as timeout_error:
      self.idempotency_guard.release(session_id)
      logger.warning(
        "UpstreamTimeout: session_id=%s, service=%s, state=%s -- asking Stripe to redeliver",
        session_id, timeout_error.service_name, state.value,
      )
      return NotificationOutcome(
        state=NotificationState.UPSTREAM_TIMEOUT,
        http_status=503,
        event_type=event.event_type,
        session_id=session_id,
        detail=str(timeout_error),
        order=order,
      )

    except DownstreamSubmissionFailed as submission_error:
      self.idempotency_guard.release(session_id)
      logger.error(
        "DownstreamSubmissionFailed: session_id=%s, status=%s, error=%s -- "
        "MANUAL RECONCILIATION REQUIRED",
        session_id, submission_error.status_code, submission_error,
      )
      return self._failed_outcome(event, order, str(submission_error))

    except InvalidSessionData as data_error:
      self.idempotency_guard.release(session_id)
      logger.error(
        "Checkout session failed validation: session_id=%s, error=%s -- "
        "MANUAL RECONCILIATION REQUIRED",
        session_id, data_error,
      )
      return self._failed_outcome(event, order, str(data_error))

    except Exception as processing_error:
      self.idempotency_guard.release(session_id)
      logger.exception(
        "Order materialization error: session_id=%s, state=%s, error=%s",
        session_id, state.value, processing_error,
      )
      return self._failed_outcome(event, order, "internal error")

    self.idempotency_guard.mark_completed(session_id)
    logger.info(
      "Shopify order submitted: session_id=%s, order_id=%s, degraded=%s",
      session_id, submission.downstream_order_id, order.degraded,
    )
    return NotificationOutcome(
      state=NotificationState.SUBMITTED,
      http_status=200,
      event_type=event.event_type,
      session_id=session_id,
      downstream_order_id=submission.downstream_order_id,
      degraded=order.degraded,
      order=order,
    )

  def _failed_outcome(self, event, order, detail):
    return NotificationOutcome(
      state=NotificationState.SUBMISSION_FAILED,
      http_status=200,
      event_type=event.event_type,
      session_id=event.session_id,
      degraded=bool(order and order.degraded),
      detail=detail,
      order=order,
    )


def build_notification_dispatcher(payment_processor=None, shopify_client=None, idempotency_guard=None):
  """Wire the pipeline from explicit collaborators (config-backed defaults)."""
  payment_processor = payment_processor or get_stripe_payment_processor()
  shopify_client = shopify_client or ShopifyOrderClient()
  return NotificationDispatcher(
    payment_processor=payment_processor,
    session_normalizer=SessionNormalizer(payment_processor),
    order_submitter=OrderSubmitter(shopify_client),
    idempotency_guard=idempotency_guard,
  )


# ---------------------------------------------------------------------------
# Module-level singleton (the idempotency markers must outlive a request)
# ---------------------------------------------------------------------------

_notification_dispatcher_singleton = None


def get_notification_dispatcher():
  """Get the notification dispatcher singleton."""
  global _notification_dispatcher_singleton
  if _notification_dispatcher_singleton is None:
    _notification_dispatcher_singleton = build_notification_dispatcher()
  return _notification_dispatcher_singleton
