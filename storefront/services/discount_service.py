# storefront/services/discount_service.py
"""
Pick the single discount a cart gets.

Candidates are the explicitly entered coupon (when eligible) and every
eligible automatic promotion. Nothing stacks: an eligible coupon always wins,
otherwise promotions are ranked by

    priority desc, discount desc, starts_at asc, id asc

and the head of that ranking is applied.
"""
from datetime import datetime
from typing import Iterable, NamedTuple, Optional

from ..utils.money import D, ZERO, round_money
from .types import (
    APPLIES_CATEGORIES,
    APPLIES_PRODUCTS,
    FIXED,
    PERCENT,
    CouponRejection,
    CouponRule,
    DiscountDecision,
    PromotionRule,
)

# rejection reasons surfaced to the UI
NOT_FOUND = "not_found"
INACTIVE = "inactive"
NOT_STARTED = "not_started"
EXPIRED = "expired"
USAGE_EXHAUSTED = "usage_exhausted"
BELOW_MINIMUM = "below_minimum"
NOT_APPLICABLE = "not_applicable"


class Candidate(NamedTuple):
    source: str                     # "coupon" | "promotion"
    discount: object                # Decimal
    priority: int
    starts_at: Optional[datetime]
    ident: str
    name: Optional[str]
    cap: object                     # Decimal | None


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def scoped_subtotal(lines, applies_to: str, category_ids, product_ids):
    """Sum of available line totals the rule applies to."""
    total = ZERO
    for l in lines:
        if not l.is_available:
            continue
        if applies_to == APPLIES_CATEGORIES and l.category_id not in category_ids:
            continue
        if applies_to == APPLIES_PRODUCTS and l.product_id not in product_ids:
            continue
        total += l.line_total
    return round_money(total)


def compute_discount(dtype: str, value, base, cap=None):
    """
    percent -> round(base * value / 100, 2)
    fixed   -> min(value, base)
    then clamp to cap and to base.
    """
    base = D(base)
    value = D(value)
    if base <= 0 or value <= 0:
        return ZERO
    if dtype == PERCENT:
        if value > 100:
            value = D(100)
        amount = round_money(base * value / D(100))
    elif dtype == FIXED:
        amount = round_money(min(value, base))
    else:
        return ZERO
    if cap is not None:
        amount = min(amount, round_money(max(ZERO, D(cap))))
    return min(amount, base)


def _min_order_message(amount) -> str:
    return f"Min order {round_money(amount):.2f}"


def check_coupon(coupon: Optional[CouponRule], code: str, subtotal, lines, now: datetime):
    """Returns (discount, None) when eligible, else (None, CouponRejection)."""
    if coupon is None:
        return None, CouponRejection(code, NOT_FOUND, "Invalid coupon")
    if not coupon.is_active:
        return None, CouponRejection(coupon.code, INACTIVE, "Coupon is inactive")
    if not coupon.is_started(now):
        return None, CouponRejection(coupon.code, NOT_STARTED, "Coupon is not active yet")
    if coupon.is_expired(now):
        return None, CouponRejection(coupon.code, EXPIRED, "Coupon expired")
    if coupon.is_exhausted():
        return None, CouponRejection(coupon.code, USAGE_EXHAUSTED, "Coupon usage limit reached")
    if D(subtotal) < D(coupon.min_order_amount):
        return None, CouponRejection(coupon.code, BELOW_MINIMUM, _min_order_message(coupon.min_order_amount))

    base = scoped_subtotal(lines, coupon.applies_to, coupon.category_ids, coupon.product_ids)
    amount = compute_discount(coupon.ctype, coupon.value, base, coupon.max_discount_amount)
    if base <= 0 or amount <= 0:
        return None, CouponRejection(coupon.code, NOT_APPLICABLE, "Coupon is not applicable to your cart")
    return amount, None


def promotion_is_eligible(promo: PromotionRule, subtotal, now: datetime) -> bool:
    return (
        promo.is_active
        and promo.is_started(now)
        and not promo.is_expired(now)
        and D(subtotal) >= D(promo.min_order_amount)
    )


def promotion_candidates(promotions: Iterable[PromotionRule], subtotal, lines, now: datetime):
    out = []
    for p in promotions:
        if not promotion_is_eligible(p, subtotal, now):
            continue
        base = scoped_subtotal(lines, p.applies_to, p.category_ids, p.product_ids)
        amount = compute_discount(p.ptype, p.value, base, p.max_discount_amount)
        if amount <= 0:
            continue
        out.append(Candidate("promotion", amount, p.priority, p.starts_at, p.id, p.name, p.max_discount_amount))
    return out


def _rank_key(c: Candidate):
    # None starts_at means "always on", which counts as earliest
    started = c.starts_at is not None
    return (-c.priority, -c.discount, started, c.starts_at or datetime.min, c.ident)


def rank_candidates(candidates):
    return sorted(candidates, key=_rank_key)


def resolve_discount(
    subtotal,
    lines,
    now: datetime,
    coupon_code: Optional[str] = None,
    coupon: Optional[CouponRule] = None,
    promotions: Iterable[PromotionRule] = (),
) -> DiscountDecision:
    subtotal = round_money(subtotal)
    code = normalize_code(coupon_code)
    rejection = None

    if code:
        # an empty scoped base yields not_applicable only after the status checks
        amount, rejection = check_coupon(coupon, code, subtotal, lines, now)
        if rejection is None:
            return DiscountDecision(
                discount_amount=amount,
                applied_coupon_code=coupon.code,
                cap=coupon.max_discount_amount,
            )

    if subtotal <= 0:
        return DiscountDecision(coupon_rejection=rejection)

    ranked = rank_candidates(promotion_candidates(promotions, subtotal, lines, now))
    if not ranked:
        return DiscountDecision(coupon_rejection=rejection)

    best = ranked[0]
    return DiscountDecision(
        discount_amount=best.discount,
        applied_promotion_id=best.ident,
        applied_promotion_name=best.name,
        cap=best.cap,
        coupon_rejection=rejection,
    )
