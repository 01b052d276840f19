"""
Stripe-Shopify Bridge -- Session Idempotency Guard

Stripe delivers notifications at least once. Without a guard, every
redelivery of "checkout completed" would create another Shopify order.

Markers are keyed by checkout session id and live in process memory:
  in_flight  -- a notification for this session is being processed
  completed  -- the Shopify order was created
Markers expire after the TTL. A marker is released when processing ends
in a way a later delivery should be allowed to retry.

Single-process only: claim() does not await, so two coroutines on the
same event loop cannot both claim a session.
"""

import logging
import time

import config

logger = logging.getLogger("bridge.idempotency")

STATUS_IN_FLIGHT = "in_flight"
STATUS_COMPLETED = "completed"


class SessionIdempotencyGuard:

  def __init__(self, ttl_seconds=None, clock=time.monotonic):
    self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.SESSION_IDEMPOTENCY_TTL_SECONDS
    self._clock = clock
    self._markers = {}

  def _purge_expired_markers(self, now):
    expired_session_ids = [
      session_id
      for session_id, (_, expires_at) in self._markers.items()
      if expires_at <= now
    ]
    for session_id in expired_session_ids:
      del self._markers[session_id]

  def status_of(self, session_id):
    self._purge_expired_markers(self._clock())
    marker = self._markers.get(session_id)
    return marker[0] if marker else None

  def claim(self, session_id):
    """
    Atomically mark a session in flight.
    Returns False if the session is already in flight or completed.
    """
    now = self._clock()
    self._purge_expired_markers(now)
    if session_id in self._markers:
      logger.info(
        "Duplicate notification collapsed: session_id=%s, status=%s",
        session_id, self._markers[session_id][0],
      )
      return False
    self._markers[session_id] = (STATUS_IN_FLIGHT, now + self.ttl_seconds)
    return True

  def mark_completed(self, session_id):
    self._markers[session_id] = (STATUS_COMPLETED, self._clock() + self.ttl_seconds)

  def release(self, session_id):
    self._markers.pop(session_id, None)
