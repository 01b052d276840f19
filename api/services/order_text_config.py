"""
Stripe-Shopify Bridge -- Order Text Configuration

One versioned table for every locale-dependent string attached to a
Shopify order, plus the shipping tier keywords used to recognise the
shipping rate a customer picked in Stripe Checkout.

Tier keywords are matched as lowercase substrings and include both the
Polish and the English wording, so a rate is recognised whichever
language its display name was written in.
"""

from typing import Optional

from pydantic import BaseModel, Field

import config


class LocaleOrderText(BaseModel):
  tags: list[str]
  note: str
  degraded_item_title: str
  low_confidence_note: str
  shipping_tier_titles: dict[str, str]


class ShippingTier(BaseModel):
  name: str
  code: str
  keywords: list[str]


class OrderTextConfig(BaseModel):
  version: int
  default_locale: str
  locales: dict[str, LocaleOrderText]
  shipping_tiers: list[ShippingTier] = Field(default_factory=list)

  def resolve_locale(self, raw_locale):
    """
    Map a Stripe session locale ("pl", "en-GB", "auto", None) to a key
    of the text table. Unknown locales fall back to default_locale.
    """
    candidate = (raw_locale or "").strip().lower().replace("_", "-")
    if candidate in self.locales:
      return candidate
    language = candidate.split("-", 1)[0]
    if language in self.locales:
      return language
    if self.default_locale in self.locales:
      return self.default_locale
    return next(iter(self.locales))

  def text_for_locale(self, raw_locale):
    return self.locales[self.resolve_locale(raw_locale)]

  def match_shipping_tier(self, display_name) -> Optional[ShippingTier]:
    lowered_display_name = (display_name or "").lower()
    if not lowered_display_name:
      return None
    for tier in self.shipping_tiers:
      for keyword in tier.keywords:
        if keyword.lower() in lowered_display_name:
          return tier
    return None


DEFAULT_ORDER_TEXT_CONFIG = OrderTextConfig(
  version=3,
  default_locale=config.DEFAULT_ORDER_LOCALE,
  locales={
    "en": LocaleOrderText(
      tags=["P24"],
      note="Paid via Przelewy24 using Stripe Checkout",
      degraded_item_title="Stripe P24 Order",
      low_confidence_note="Quantity missing for one or more items, assumed 1",
      shipping_tier_titles={
        "standard": "DPD Standard Delivery",
        "express": "DPD Express Delivery",
      },
    ),
    "pl": LocaleOrderText(
      tags=["Przelewy24"],
      note="Opłacone przez Przelewy24 (Stripe Checkout)",
      degraded_item_title="Zamówienie Stripe P24",
      low_confidence_note="Brak ilości dla co najmniej jednej pozycji, przyjęto 1",
      shipping_tier_titles={
        "standard": "DPD – Dostawa standardowa",
        "express": "DPD – Dostawa ekspresowa",
      },
    ),
  },
  shipping_tiers=[
    ShippingTier(name="express", code="DPD_EXPRESS", keywords=["express", "ekspres"]),
    ShippingTier(name="standard", code="DPD_STANDARD", keywords=["standard", "standardowa"]),
  ],
)
