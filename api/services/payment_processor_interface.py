"""
Stripe-Shopify Bridge -- Payment Processor Interface

Abstract base for the payment processor collaborator. The webhook
pipeline only talks to this interface, so tests substitute a fake
without touching the network.
"""

from abc import ABC, abstractmethod


class PaymentProcessorInterface(ABC):
  """Abstract base for payment processors."""

  @abstractmethod
  async def create_checkout_session(self, session_params):
    """
    Create a hosted checkout session.

    Args:
      session_params: dict of session fields (line_items, shipping_options,
        success_url, ...), nested the way the processor documents them.

    Returns: dict with at minimum:
      {
        "id": "cs_...",               # session id
        "url": "https://checkout...", # hosted redirect URL
      }
    """
    ...

  @abstractmethod
  async def retrieve_checkout_session(self, session_id):
    """
    Authoritative read of a session with line items (and their products),
    shipping cost and shipping rate expanded.

    Returns: the full session record as a dict. Raises stripe.StripeError
    (stripe.APIConnectionError when Stripe cannot be reached).
    """
    ...

  @abstractmethod
  def construct_event(self, raw_body, signature_header):
    """
    Verify a notification against its raw body and parse it.

    Args:
      raw_body: Raw request body bytes.
      signature_header: The processor's signature header value.

    Returns: VerifiedEvent. Raises InvalidSignature.
    """
    ...
