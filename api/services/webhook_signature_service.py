"""
Stripe-Shopify Bridge -- Webhook Signature Verification

Verifies the Stripe-Signature header against the exact bytes Stripe sent,
using stripe.Webhook.construct_event (v1 HMAC-SHA256 scheme over
"<t>." + raw_body, constant-time comparison, timestamp tolerance).

The body is parsed into an event only after the signature matches. A body
that went through a JSON parse and re-serialization never verifies, since
whitespace and key order change the signed bytes.

Security contract:
  - Missing secret -> verification always fails (fail-closed)
  - Only raw bytes are ever verified, never a parsed or decoded body
  - Header values outside ASCII are rejected before any comparison
  - Signed payloads that are not Stripe events are rejected too
"""

import logging

import stripe

from services.bridge_errors import InvalidSignature
from services.canonical_order_models import VerifiedEvent

logger = logging.getLogger("bridge.signature")

DEFAULT_TOLERANCE_SECONDS = 300


def _check_verification_inputs(raw_body, signature_header, signing_secret):
  if not signing_secret:
    logger.warning("Stripe webhook secret not configured -- rejecting notification")
    raise InvalidSignature("Webhook signing secret is not configured")

  if not isinstance(raw_body, (bytes, bytearray)):
    raise InvalidSignature("Signature must be verified against the raw request bytes")

  if not signature_header:
    raise InvalidSignature("Missing Stripe-Signature header")

  # Starlette decodes header bytes as latin-1
  if not signature_header.isascii():
    raise InvalidSignature("Stripe-Signature header contains non-ASCII characters")


def _event_fields(event_data):
  """(event_id, event_type, data_object) of a parsed event, or InvalidSignature."""
  if not isinstance(event_data, dict):
    raise InvalidSignature("Signed payload is not a Stripe event")

  event_type = event_data.get("type")
  if not isinstance(event_type, str) or not event_type:
    raise InvalidSignature("Signed payload has no event type")

  data = event_data.get("data")
  if data is None:
    data = {}
  if not isinstance(data, dict):
    raise InvalidSignature("Signed payload has a malformed data block")

  data_object = data.get("object")
  if data_object is None:
    data_object = {}
  if not isinstance(data_object, dict):
    raise InvalidSignature("Signed payload has a malformed data object")

  event_id = event_data.get("id")
  return (event_id if isinstance(event_id, str) else ""), event_type, data_object


def construct_verified_event(raw_body, signature_header, signing_secret, tolerance_seconds=DEFAULT_TOLERANCE_SECONDS):
  """
  Verify the raw body and parse it into a VerifiedEvent.

  Args:
    raw_body: Exact request body bytes, untouched by any JSON parser.
    signature_header: Value of the Stripe-Signature header.
    signing_secret: The endpoint's whsec_... signing secret.
    tolerance_seconds: Maximum age of the signed timestamp.

  Returns: VerifiedEvent. Raises InvalidSignature.
  """
  _check_verification_inputs(raw_body, signature_header, signing_secret)

  try:
    event = stripe.Webhook.construct_event(
      bytes(raw_body),
      signature_header,
      signing_secret,
      tolerance=tolerance_seconds,
    )
  except stripe.SignatureVerificationError as verification_error:
    raise InvalidSignature(str(verification_error)) from verification_error
  except ValueError as parse_error:
    # Body is not UTF-8 text, or not JSON
    raise InvalidSignature(f"Signed payload is not valid JSON: {parse_error}") from parse_error
  except (AttributeError, TypeError) as construct_error:
    # Signature matched, body is JSON but not an object
    raise InvalidSignature("Signed payload is not a Stripe event") from construct_error

  event_id, event_type, data_object = _event_fields(event.to_dict())
  return VerifiedEvent(event_id=event_id, event_type=event_type, data_object=data_object)
