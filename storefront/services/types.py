# storefront/services/types.py
"""
Immutable value types shared by the pricing services.

Everything here is plain data: the services never touch the database or the
request, so a quote can be rebuilt from these values alone.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from ..utils.money import money_float, optional_money_float

PERCENT = "percent"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENT, FIXED)

APPLIES_ALL = "all"
APPLIES_CATEGORIES = "categories"
APPLIES_PRODUCTS = "products"


def _iso(dt: Optional[datetime]):
    return dt.isoformat() if dt else None


# ---- cart / catalog ---------------------------------------------------------

@dataclass(frozen=True)
class CartLineRequest:
    product_id: str
    variant_id: str
    quantity: int

    @property
    def key(self) -> Tuple[str, str]:
        return (self.product_id, self.variant_id)


@dataclass(frozen=True)
class DealInfo:
    id: str
    name: str
    label: str
    expires_at: Optional[datetime] = None

    def as_api(self):
        return {"id": self.id, "name": self.name, "label": self.label, "expiresAt": _iso(self.expires_at)}


@dataclass(frozen=True)
class CatalogEntry:
    """What the catalog knows about one (product, variant) pair."""
    product_id: str
    variant_id: str
    title: str
    slug: str
    image: str
    unit_price: Decimal
    available_stock: int
    is_active: bool = True
    category_id: str = ""
    original_unit_price: Optional[Decimal] = None
    deal: Optional[DealInfo] = None


@dataclass(frozen=True)
class ResolvedLine:
    product_id: str
    variant_id: str
    title: str
    slug: str
    image: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    available_stock: int
    is_available: bool
    category_id: str = ""
    original_unit_price: Optional[Decimal] = None
    message: Optional[str] = None
    deal: Optional[DealInfo] = None

    def as_api(self):
        out = {
            "productId": self.product_id,
            "variantId": self.variant_id,
            "title": self.title,
            "slug": self.slug,
            "image": self.image,
            "quantity": self.quantity,
            "unitPrice": money_float(self.unit_price),
            "originalUnitPrice": optional_money_float(self.original_unit_price),
            "lineTotal": money_float(self.line_total),
            "availableStock": self.available_stock,
            "isAvailable": self.is_available,
            "message": self.message,
        }
        if self.deal:
            out["deal"] = self.deal.as_api()
        return out


# ---- discounts ----------------------------------------------------------------

@dataclass(frozen=True)
class CouponRule:
    code: str
    ctype: str
    value: Decimal
    min_order_amount: Decimal = Decimal("0")
    max_discount_amount: Optional[Decimal] = None
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    usage_limit: Optional[int] = None
    used_count: int = 0
    is_active: bool = True
    applies_to: str = APPLIES_ALL
    category_ids: frozenset = field(default_factory=frozenset)
    product_ids: frozenset = field(default_factory=frozenset)

    def is_started(self, now: datetime) -> bool:
        return self.starts_at is None or now >= self.starts_at

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit


@dataclass(frozen=True)
class PromotionRule:
    id: str
    name: str
    ptype: str
    value: Decimal
    priority: int = 0
    min_order_amount: Decimal = Decimal("0")
    max_discount_amount: Optional[Decimal] = None
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool = True
    applies_to: str = APPLIES_ALL
    category_ids: frozenset = field(default_factory=frozenset)
    product_ids: frozenset = field(default_factory=frozenset)

    def is_started(self, now: datetime) -> bool:
        return self.starts_at is None or now >= self.starts_at

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at


@dataclass(frozen=True)
class CouponRejection:
    code: str
    reason: str
    message: str

    def as_api(self):
        return {"code": self.code, "ok": False, "reason": self.reason, "message": self.message}


@dataclass(frozen=True)
class DiscountDecision:
    discount_amount: Decimal = Decimal("0")
    applied_coupon_code: Optional[str] = None
    applied_promotion_id: Optional[str] = None
    applied_promotion_name: Optional[str] = None
    cap: Optional[Decimal] = None
    coupon_rejection: Optional[CouponRejection] = None

    @property
    def coupon_discount_amount(self) -> Decimal:
        return self.discount_amount if self.applied_coupon_code else Decimal("0")

    @property
    def promotion_discount_amount(self) -> Decimal:
        return self.discount_amount if self.applied_promotion_id else Decimal("0")


# ---- shipping -------------------------------------------------------------------

@dataclass(frozen=True)
class ShippingEta:
    min_days: int
    max_days: int
    text: str

    def as_api(self):
        return {"minDays": self.min_days, "maxDays": self.max_days, "text": self.text}


@dataclass(frozen=True)
class CityRule:
    city: str
    fee: Decimal
    free_above_subtotal: Optional[Decimal] = None
    eta_min_days: Optional[int] = None
    eta_max_days: Optional[int] = None


@dataclass(frozen=True)
class ShippingSettings:
    default_fee: Decimal = Decimal("0")
    free_above_subtotal: Optional[Decimal] = None
    eta_min_days: int = 3
    eta_max_days: int = 5
    city_rules: Tuple[CityRule, ...] = ()


@dataclass(frozen=True)
class ShippingQuote:
    amount: Decimal
    is_free: bool
    free_above_subtotal: Optional[Decimal]
    remaining_for_free: Optional[Decimal]
    matched_city: Optional[str]
    eta: ShippingEta

    def as_api(self):
        return {
            "shippingAmount": money_float(self.amount),
            "shippingIsFree": self.is_free,
            "shippingFreeAboveSubtotal": optional_money_float(self.free_above_subtotal),
            "shippingRemainingForFree": optional_money_float(self.remaining_for_free),
            "matchedCity": self.matched_city,
            "deliveryEta": self.eta.as_api() if self.eta.text else None,
        }


# ---- quote ------------------------------------------------------------------------

@dataclass(frozen=True)
class Quote:
    items: Tuple[ResolvedLine, ...]
    items_subtotal: Decimal
    discount: DiscountDecision
    shipping: ShippingQuote
    tax_amount: Decimal
    total_amount: Decimal
    currency: str

    @property
    def discount_amount(self) -> Decimal:
        return self.discount.discount_amount

    @property
    def any_unavailable(self) -> bool:
        return any(not l.is_available for l in self.items)

    def as_api(self):
        d = self.discount
        coupon = None
        if d.coupon_rejection:
            coupon = d.coupon_rejection.as_api()
        elif d.applied_coupon_code:
            coupon = {"code": d.applied_coupon_code, "ok": True, "reason": None, "message": None}
        promotion = None
        if d.applied_promotion_id:
            promotion = {"id": d.applied_promotion_id, "name": d.applied_promotion_name}

        return {
            "currency": self.currency,
            "items": [l.as_api() for l in self.items],
            "itemsSubtotal": money_float(self.items_subtotal),
            "discountAmount": money_float(d.discount_amount),
            "couponDiscountAmount": money_float(d.coupon_discount_amount),
            "promotionDiscountAmount": money_float(d.promotion_discount_amount),
            "appliedCouponCode": d.applied_coupon_code,
            "appliedPromotionId": d.applied_promotion_id,
            "appliedPromotionName": d.applied_promotion_name,
            "coupon": coupon,
            "promotion": promotion,
            "shippingAmount": money_float(self.shipping.amount),
            "shippingFreeAboveSubtotal": optional_money_float(self.shipping.free_above_subtotal),
            "shippingRemainingForFree": optional_money_float(self.shipping.remaining_for_free),
            "shippingIsFree": self.shipping.is_free,
            "deliveryEta": self.shipping.eta.as_api() if self.shipping.eta.text else None,
            "taxAmount": money_float(self.tax_amount),
            "totalAmount": money_float(self.total_amount),
            "anyUnavailable": self.any_unavailable,
        }
