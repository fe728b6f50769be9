# storefront/services/quote_service.py
"""
Checkout quote: resolve lines, pick a discount, price shipping, total it up.

    ctx = load_pricing_context(lines, coupon_code=..., now=...)
    quote = build_quote(ctx, lines, coupon_code=..., city=...)

build_quote is pure over the PricingContext, so the same context and inputs
always produce the same Quote (and the same JSON).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from ..errors import CouponRejectedError
from ..utils.money import D, ZERO, non_negative, round_money
from .availability import validate_lines
from .catalog_service import SqlCatalog
from .coupon_service import find_coupon_by_code, list_active_promotions
from .discount_service import normalize_code, resolve_discount
from .settings_service import get_shipping_settings
from .shipping_service import compute_shipping
from .types import (
    CatalogEntry,
    CouponRule,
    DiscountDecision,
    PromotionRule,
    Quote,
    ShippingEta,
    ShippingQuote,
    ShippingSettings,
)

logger = logging.getLogger("storefront.quote")

TaxFn = Callable[[dict], object]


def utcnow() -> datetime:
    # models store naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class PricingContext:
    """Snapshot of everything a quote depends on, fetched once per request."""
    now: datetime
    catalog: Dict[Tuple[str, str], Optional[CatalogEntry]] = field(default_factory=dict)
    coupon: Optional[CouponRule] = None
    promotions: Tuple[PromotionRule, ...] = ()
    shipping: ShippingSettings = field(default_factory=ShippingSettings)
    currency: str = "PKR"


def load_pricing_context(
    lines,
    coupon_code: Optional[str] = None,
    now: Optional[datetime] = None,
    currency: str = "PKR",
    catalog=None,
    session=None,
) -> PricingContext:
    now = now or utcnow()
    if not lines:
        return PricingContext(now=now, currency=currency)

    catalog = catalog or SqlCatalog(session)
    entries = catalog.resolve([l.key for l in lines], now)
    coupon = find_coupon_by_code(coupon_code, session) if normalize_code(coupon_code) else None

    return PricingContext(
        now=now,
        catalog=entries,
        coupon=coupon,
        promotions=tuple(list_active_promotions(now, session)),
        shipping=get_shipping_settings(session),
        currency=currency,
    )


def empty_quote(ctx: PricingContext) -> Quote:
    return Quote(
        items=(),
        items_subtotal=ZERO,
        discount=DiscountDecision(),
        shipping=ShippingQuote(
            amount=ZERO,
            is_free=False,
            free_above_subtotal=None,
            remaining_for_free=None,
            matched_city=None,
            eta=ShippingEta(0, 0, ""),
        ),
        tax_amount=ZERO,
        total_amount=ZERO,
        currency=ctx.currency,
    )


def build_quote(
    ctx: PricingContext,
    lines,
    coupon_code: Optional[str] = None,
    city: str = "",
    tax_amount=None,
    compute_tax: Optional[TaxFn] = None,
    coupon_policy: str = "fallback",
) -> Quote:
    if not lines:
        return empty_quote(ctx)

    items = validate_lines(lines, ctx.catalog)

    items_subtotal = round_money(sum((l.line_total for l in items if l.is_available), ZERO))

    discount = resolve_discount(
        items_subtotal,
        items,
        ctx.now,
        coupon_code=coupon_code,
        coupon=ctx.coupon,
        promotions=ctx.promotions,
    )
    if discount.coupon_rejection and coupon_policy == "reject":
        raise CouponRejectedError(discount.coupon_rejection)

    discounted = non_negative(items_subtotal - discount.discount_amount)
    shipping = compute_shipping(discounted, city, ctx.shipping)

    if tax_amount is None and compute_tax is not None:
        tax_amount = compute_tax({
            "itemsSubtotal": items_subtotal,
            "discountAmount": discount.discount_amount,
            "shippingAmount": shipping.amount,
            "city": city,
            "items": items,
        })
    tax = round_money(non_negative(D(tax_amount)))

    total = round_money(discounted + shipping.amount + tax)

    return Quote(
        items=items,
        items_subtotal=items_subtotal,
        discount=discount,
        shipping=shipping,
        tax_amount=tax,
        total_amount=total,
        currency=ctx.currency,
    )


def quote_cart(
    lines,
    coupon_code: Optional[str] = None,
    city: str = "",
    tax_amount=None,
    compute_tax: Optional[TaxFn] = None,
    coupon_policy: str = "fallback",
    currency: str = "PKR",
    now: Optional[datetime] = None,
    catalog=None,
    session=None,
) -> Quote:
    """Load a fresh pricing context and build the quote."""
    ctx = load_pricing_context(lines, coupon_code, now=now, currency=currency, catalog=catalog, session=session)
    quote = build_quote(
        ctx, lines,
        coupon_code=coupon_code,
        city=city,
        tax_amount=tax_amount,
        compute_tax=compute_tax,
        coupon_policy=coupon_policy,
    )
    d = quote.discount
    logger.info(
        "quote lines=%d unavailable=%s subtotal=%s discount=%s source=%s shipping=%s total=%s",
        len(quote.items),
        quote.any_unavailable,
        quote.items_subtotal,
        d.discount_amount,
        d.applied_coupon_code or (f"promotion:{d.applied_promotion_id}" if d.applied_promotion_id else "-"),
        quote.shipping.amount,
        quote.total_amount,
    )
    if d.coupon_rejection:
        logger.info("coupon %s rejected: %s", d.coupon_rejection.code, d.coupon_rejection.reason)
    return quote
