"""
Stripe-Shopify Bridge -- Session Normalizer

Turns a verified "checkout completed" event into a CanonicalOrder.

The event payload is only a snapshot: line items and the shipping rate
are expandable relations that Stripe leaves out of it. So the session is
always read again by id with everything expanded, and the order is built
from that authoritative copy.

Derivation rules:
  - Name: shipping name (customer name if none), split on the first space
    into first name / rest-as-last-name. Empty strings if no name at all.
  - Unit price: line item amount_total / quantity / 100. A zero or missing
    quantity is treated as 1 and the item is flagged low_confidence.
  - Variant: metadata "shopify_variant_id" (or "variant_id") makes the line
    a catalog match carrying only the variant reference. Otherwise the line
    gets a free-text title plus size/color from metadata ("N/A" if absent).
  - Locale: session locale picks the note, tags and shipping titles.
  - Shipping: display name matched against the tier keywords; unrecognised
    names are kept verbatim.

If Stripe answers the re-fetch with an error the order degrades to a
single line item worth the session's amount_total, built from the snapshot.
"""

import logging

import stripe

from services.bridge_errors import DegradedOrder, InvalidSessionData, UpstreamTimeout
from services.canonical_order_models import (
  CanonicalAddress,
  CanonicalLineItem,
  CanonicalOrder,
  CanonicalShippingLine,
)
from services.order_text_config import DEFAULT_ORDER_TEXT_CONFIG

logger = logging.getLogger("bridge.normalizer")

VARIANT_METADATA_KEYS = ("shopify_variant_id", "variant_id")
SIZE_METADATA_KEYS = ("size",)
COLOR_METADATA_KEYS = ("color", "colour")
MISSING_PROPERTY_VALUE = "N/A"


# =========================================================================
# Field derivation helpers
# =========================================================================

def split_full_name(full_name):
  """'Jan Maria Kowalski' -> ('Jan', 'Maria Kowalski'). None -> ('', '')."""
  stripped_name = (full_name or "").strip()
  if not stripped_name:
    return "", ""
  first_name, _, last_name = stripped_name.partition(" ")
  return first_name, last_name.strip()


def derive_unit_price(total_minor, quantity):
  """
  Returns (unit_price, effective_quantity, low_confidence).
  unit_price is in major units.
  """
  if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
    return total_minor / 1 / 100, 1, True
  return total_minor / quantity / 100, quantity, False


def require_minor_amount(value, field_name, session_id):
  """Strict validation: amounts must be non-negative integers."""
  if isinstance(value, bool) or not isinstance(value, int) or value < 0:
    raise InvalidSessionData(
      f"{field_name} must be a non-negative integer amount, got {value!r}",
      session_id=session_id,
    )
  return value


def _first_metadata_value(metadata, keys):
  for key in keys:
    value = metadata.get(key)
    if value not in (None, ""):
      return str(value)
  return None


def _line_item_metadata(line_item):
  """Product metadata, overridden by price metadata."""
  price = line_item.get("price") or {}
  product = price.get("product")
  metadata = {}
  if isinstance(product, dict):
    metadata.update(product.get("metadata") or {})
  metadata.update(price.get("metadata") or {})
  return metadata


def _line_item_title(line_item):
  if line_item.get("description"):
    return line_item["description"]
  product = (line_item.get("price") or {}).get("product")
  if isinstance(product, dict) and product.get("name"):
    return product["name"]
  return ""


def _shipping_details(session):
  """Shipping details across Stripe API versions."""
  collected_information = session.get("collected_information") or {}
  return (
    session.get("shipping_details")
    or collected_information.get("shipping_details")
    or session.get("shipping")
    or {}
  )


def _canonical_address(address, phone):
  address = address or {}
  return CanonicalAddress(
    line1=address.get("line1") or "",
    line2=address.get("line2") or "",
    city=address.get("city") or "",
    region=address.get("state") or "",
    postal_code=address.get("postal_code") or "",
    country_code=(address.get("country") or "").upper(),
    phone=phone or "",
  )


class SessionNormalizer:
  """Builds CanonicalOrders from Stripe sessions."""

  def __init__(self, payment_processor, order_text_config=None):
    self.payment_processor = payment_processor
    self.order_text_config = order_text_config or DEFAULT_ORDER_TEXT_CONFIG

  # -----------------------------------------------------------------------
  # Entry point
  # -----------------------------------------------------------------------

  async def materialize_canonical_order(self, event):
    """
    Re-fetch the session named by the event and normalize it.

    Raises UpstreamTimeout if Stripe cannot be reached or does not answer
    in time, and InvalidSessionData if the amounts fail strict validation.
    A Stripe error response yields a degraded order.
    """
    session_id = event.session_id
    if not session_id:
      raise InvalidSessionData(f"Event {event.event_id} carries no session id")

    try:
      session = await self.payment_processor.retrieve_checkout_session(session_id)
    except stripe.APIConnectionError as connection_error:
      logger.warning(
        "Stripe session re-fetch failed to connect: session_id=%s, error=%s",
        session_id, connection_error,
      )
      raise UpstreamTimeout("stripe", session_id=session_id) from connection_error
    except stripe.StripeError as fetch_error:
      condition = DegradedOrder(
        f"Session re-fetch failed, using event snapshot: {fetch_error}",
        session_id=session_id,
      )
      logger.warning("Degraded order: session_id=%s, reason=%s", session_id, condition)
      return self.build_degraded_order(event.data_object, reason=str(condition))

    return self.build_canonical_order(session)

  # -----------------------------------------------------------------------
  # Full-fidelity order
  # -----------------------------------------------------------------------

  def build_canonical_order(self, session):
    session_id = session.get("id", "")
    amount_total_minor = require_minor_amount(session.get("amount_total"), "amount_total", session_id)

    locale = self.order_text_config.resolve_locale(session.get("locale"))
    locale_text = self.order_text_config.text_for_locale(locale)

    line_items = [
      self._canonical_line_item(line_item, session_id)
      for line_item in (session.get("line_items") or {}).get("data") or []
    ]

    note = locale_text.note
    if any(item.low_confidence for item in line_items):
      note = f"{note}\n{locale_text.low_confidence_note}"

    order = CanonicalOrder(
      session_id=session_id,
      locale=locale,
      currency=(session.get("currency") or "").upper(),
      amount_total_minor=amount_total_minor,
      line_items=line_items,
      shipping_line=self.resolve_shipping_line(session, locale),
      note=note,
      tags=list(locale_text.tags),
      **self._customer_fields(session),
    )

    if not order.reconciles_with_amount_total():
      logger.warning(
        "Line items do not reconcile with session total: session_id=%s, "
        "items_total=%d, shipping=%d, amount_total=%d",
        session_id, order.items_total_minor(), order.shipping_total_minor(),
        amount_total_minor,
      )

    return order

  def _canonical_line_item(self, line_item, session_id):
    total_minor = require_minor_amount(line_item.get("amount_total"), "line_items.amount_total", session_id)
    unit_price, quantity, low_confidence = derive_unit_price(total_minor, line_item.get("quantity"))

    if low_confidence:
      logger.warning(
        "Line item without usable quantity, assuming 1: session_id=%s, line_item=%s",
        session_id, line_item.get("id"),
      )

    metadata = _line_item_metadata(line_item)
    variant_id = _first_metadata_value(metadata, VARIANT_METADATA_KEYS)
    if variant_id:
      return CanonicalLineItem(
        variant_id=variant_id,
        quantity=quantity,
        unit_price=unit_price,
        total_minor=total_minor,
        low_confidence=low_confidence,
      )

    return CanonicalLineItem(
      title=_line_item_title(line_item),
      quantity=quantity,
      unit_price=unit_price,
      total_minor=total_minor,
      size=_first_metadata_value(metadata, SIZE_METADATA_KEYS) or MISSING_PROPERTY_VALUE,
      color=_first_metadata_value(metadata, COLOR_METADATA_KEYS) or MISSING_PROPERTY_VALUE,
      low_confidence=low_confidence,
    )

  def _customer_fields(self, session):
    customer_details = session.get("customer_details") or {}
    shipping_details = _shipping_details(session)

    first_name, last_name = split_full_name(
      shipping_details.get("name") or customer_details.get("name")
    )
    shipping_address = _canonical_address(
      shipping_details.get("address") or customer_details.get("address"),
      customer_details.get("phone"),
    )

    return {
      "email": customer_details.get("email") or session.get("customer_email") or "",
      "first_name": first_name,
      "last_name": last_name,
      "shipping_address": shipping_address,
      "billing_address": shipping_address.model_copy(),
    }

  # -----------------------------------------------------------------------
  # Shipping
  # -----------------------------------------------------------------------

  def resolve_shipping_line(self, session, locale):
    shipping_cost = session.get("shipping_cost")
    if not shipping_cost:
      return None

    session_id = session.get("id", "")
    cost_minor = require_minor_amount(shipping_cost.get("amount_total", 0), "shipping_cost.amount_total", session_id)

    shipping_rate = shipping_cost.get("shipping_rate")
    if isinstance(shipping_rate, dict):
      display_name = shipping_rate.get("display_name") or ""
    else:
      display_name = shipping_rate or ""

    return self.resolve_shipping_tier(display_name, cost_minor, locale)

  def resolve_shipping_tier(self, display_name, cost_minor, locale):
    """Known tier -> localized title and tier code; otherwise the raw label."""
    tier = self.order_text_config.match_shipping_tier(display_name)
    if tier is None:
      return CanonicalShippingLine(
        title=display_name,
        code=display_name,
        price=cost_minor / 100,
      )

    locale_text = self.order_text_config.text_for_locale(locale)
    return CanonicalShippingLine(
      title=locale_text.shipping_tier_titles.get(tier.name, display_name),
      code=tier.code,
      price=cost_minor / 100,
      tier=tier.name,
    )

  # -----------------------------------------------------------------------
  # Degraded order
  # -----------------------------------------------------------------------

  def build_degraded_order(self, session_snapshot, reason=None):
    """One line item carrying the whole amount_total, from the event snapshot."""
    session_id = session_snapshot.get("id", "")
    amount_total_minor = require_minor_amount(session_snapshot.get("amount_total"), "amount_total", session_id)

    locale = self.order_text_config.resolve_locale(session_snapshot.get("locale"))
    locale_text = self.order_text_config.text_for_locale(locale)

    return CanonicalOrder(
      session_id=session_id,
      locale=locale,
      currency=(session_snapshot.get("currency") or "").upper(),
      amount_total_minor=amount_total_minor,
      line_items=[
        CanonicalLineItem(
          title=locale_text.degraded_item_title,
          quantity=1,
          unit_price=amount_total_minor / 100,
          total_minor=amount_total_minor,
        )
      ],
      note=locale_text.note,
      tags=list(locale_text.tags),
      degraded=True,
      degraded_reason=reason,
      **self._customer_fields(session_snapshot),
    )
