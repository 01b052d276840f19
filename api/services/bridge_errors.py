"""
Stripe-Shopify Bridge -- Error Taxonomy

  InvalidSignature            -- notification not authentic (400, no side effects)
  UpstreamTimeout             -- Stripe or Shopify did not answer in time (retryable by redelivery)
  DegradedOrder               -- re-fetch failed, order built from the event snapshot (non-fatal)
  InvalidSessionData          -- session financial fields failed strict validation
  DownstreamSubmissionFailed  -- Shopify rejected the order (terminal for this attempt)
"""


class BridgeError(Exception):
  """Base class. Carries the session id whenever one is known."""

  def __init__(self, message, session_id=None):
    super().__init__(message)
    self.session_id = session_id


class InvalidSignature(BridgeError):
  pass


class UpstreamTimeout(BridgeError):

  def __init__(self, service_name, session_id=None):
    super().__init__(f"{service_name} request timed out", session_id=session_id)
    self.service_name = service_name


class DegradedOrder(BridgeError):
  """
  Not raised across component boundaries. Recorded on the canonical order
  (degraded_reason) and logged when the authoritative re-fetch fails.
  """


class InvalidSessionData(BridgeError):
  pass


class DownstreamSubmissionFailed(BridgeError):

  def __init__(self, message, session_id=None, status_code=None, error_body=None):
    super().__init__(message, session_id=session_id)
    self.status_code = status_code
    self.error_body = error_body
