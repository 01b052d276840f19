"""
Stripe-Shopify Bridge -- Canonical Order Models

The internal, normalized shape of a paid order. Built fresh from a Stripe
Checkout Session for every notification and discarded after submission.
Amounts named *_minor are integer minor units (grosze / cents); plain
prices are decimal major units as Shopify expects them.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class VerifiedEvent(BaseModel):
  """A Stripe event whose signature has been checked against the raw body."""

  event_id: str = ""
  event_type: str
  data_object: dict[str, Any] = Field(default_factory=dict)

  @property
  def session_id(self):
    return self.data_object.get("id", "")


class CanonicalAddress(BaseModel):
  line1: str = ""
  line2: str = ""
  city: str = ""
  region: str = ""
  postal_code: str = ""
  country_code: str = ""
  phone: str = ""


class CanonicalLineItem(BaseModel):
  # Exactly one of title / variant_id is set
  title: Optional[str] = None
  variant_id: Optional[str] = None
  quantity: int
  unit_price: float
  total_minor: int
  size: Optional[str] = None
  color: Optional[str] = None
  low_confidence: bool = False


class CanonicalShippingLine(BaseModel):
  title: str
  code: str
  price: float
  tier: Optional[str] = None


class CanonicalOrder(BaseModel):
  session_id: str
  email: str = ""
  locale: str
  currency: str = ""
  first_name: str = ""
  last_name: str = ""
  shipping_address: CanonicalAddress = Field(default_factory=CanonicalAddress)
  billing_address: CanonicalAddress = Field(default_factory=CanonicalAddress)
  line_items: list[CanonicalLineItem] = Field(default_factory=list)
  shipping_line: Optional[CanonicalShippingLine] = None
  note: str = ""
  tags: list[str] = Field(default_factory=list)
  amount_total_minor: int
  degraded: bool = False
  degraded_reason: Optional[str] = None

  def items_total_minor(self):
    return sum(item.total_minor for item in self.line_items)

  def shipping_total_minor(self):
    if self.shipping_line is None:
      return 0
    return int(round(self.shipping_line.price * 100))

  def reconciles_with_amount_total(self, tolerance_minor=1):
    """
    True when the line items plus shipping add up to the session total.
    Each line item may round its unit price by up to one minor unit.
    """
    computed_total_minor = 0.0
    for item in self.line_items:
      computed_total_minor += item.unit_price * item.quantity * 100
    computed_total_minor += self.shipping_total_minor()
    allowed_drift = tolerance_minor * max(len(self.line_items), 1)
    return abs(computed_total_minor - self.amount_total_minor) <= allowed_drift


class SubmissionResult(BaseModel):
  session_id: str
  downstream_order_id: str
  downstream_order_name: str = ""
