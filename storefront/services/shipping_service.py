# storefront/services/shipping_service.py
import logging
import re
from decimal import InvalidOperation
from typing import Optional

from ..utils.money import D, MAX_AMOUNT, ZERO, non_negative, round_money
from .types import CityRule, ShippingEta, ShippingQuote, ShippingSettings

logger = logging.getLogger("storefront.shipping")

MAX_ETA_DAYS = 60
DEFAULT_ETA_MIN_DAYS = 3
DEFAULT_ETA_MAX_DAYS = 5

_WS = re.compile(r"\s+")


# ---- normalization helpers ----------------------------------------------------

def normalize_city(city) -> str:
    return _WS.sub(" ", str(city or "").strip()).lower()


def clamp_days(value, fallback: Optional[int] = 0) -> Optional[int]:
    try:
        n = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return fallback
    return min(MAX_ETA_DAYS, max(0, n))


def _read_money(value, fallback=ZERO):
    if isinstance(value, bool) or value is None:
        return fallback
    try:
        v = D(value)
    except (InvalidOperation, ValueError):
        return fallback
    if not v.is_finite() or v > MAX_AMOUNT:
        return fallback
    return non_negative(v)


def _read_threshold(value):
    """A threshold must be a real, non-negative number; anything else means "no threshold"."""
    if isinstance(value, bool) or value is None or value == "":
        return None
    try:
        v = D(value)
    except (InvalidOperation, ValueError):
        return None
    if not v.is_finite() or v < 0 or v > MAX_AMOUNT:
        return None
    return v


def _read_rule_days(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    return clamp_days(value, fallback=None)


def normalize_shipping_settings(raw) -> ShippingSettings:
    """Turn the loosely-typed stored settings document into ShippingSettings."""
    root = raw if isinstance(raw, dict) else {}

    eta = root.get("etaDefault") if isinstance(root.get("etaDefault"), dict) else {}
    eta_min = clamp_days(eta.get("minDays", DEFAULT_ETA_MIN_DAYS), DEFAULT_ETA_MIN_DAYS)
    eta_max = clamp_days(eta.get("maxDays", DEFAULT_ETA_MAX_DAYS), DEFAULT_ETA_MAX_DAYS)

    rules = []
    for r in root.get("cityRules") or []:
        if not isinstance(r, dict):
            continue
        city = str(r.get("city") or "").strip()
        if not city:
            continue
        rules.append(CityRule(
            city=city,
            fee=_read_money(r.get("fee")),
            free_above_subtotal=_read_threshold(r.get("freeAboveSubtotal")),
            eta_min_days=_read_rule_days(r.get("etaMinDays")),
            eta_max_days=_read_rule_days(r.get("etaMaxDays")),
        ))

    return ShippingSettings(
        default_fee=_read_money(root.get("defaultFee")),
        free_above_subtotal=_read_threshold(root.get("freeAboveSubtotal")),
        eta_min_days=eta_min,
        eta_max_days=eta_max,
        city_rules=tuple(rules),
    )


def missing_shipping_settings() -> ShippingSettings:
    logger.warning("shipping settings not configured; using free-of-charge defaults")
    return ShippingSettings()


# ---- calculation --------------------------------------------------------------

def match_city_rule(settings: ShippingSettings, city) -> Optional[CityRule]:
    key = normalize_city(city)
    if not key:
        return None
    return next((r for r in settings.city_rules if normalize_city(r.city) == key), None)


def format_eta_text(min_days: int, max_days: int) -> str:
    lo, hi = min(min_days, max_days), max(min_days, max_days)
    if hi <= 0:
        return ""
    if lo == hi:
        return f"Delivery in {lo} business day{'' if lo == 1 else 's'}"
    return f"Delivery in {lo}–{hi} business days"


def delivery_eta(settings: ShippingSettings, rule: Optional[CityRule] = None) -> ShippingEta:
    if rule is not None and rule.eta_min_days is not None and rule.eta_max_days is not None:
        lo, hi = rule.eta_min_days, rule.eta_max_days
    else:
        lo, hi = settings.eta_min_days, settings.eta_max_days
    lo = clamp_days(lo)
    hi = clamp_days(hi, lo)
    return ShippingEta(min_days=lo, max_days=hi, text=format_eta_text(lo, hi))


def compute_shipping(discounted_subtotal, city, settings: ShippingSettings) -> ShippingQuote:
    subtotal = non_negative(discounted_subtotal)
    rule = match_city_rule(settings, city)

    threshold = rule.free_above_subtotal if rule and rule.free_above_subtotal is not None else settings.free_above_subtotal
    eta = delivery_eta(settings, rule)
    matched = rule.city if rule else None

    if threshold is not None and subtotal >= threshold:
        return ShippingQuote(
            amount=ZERO,
            is_free=True,
            free_above_subtotal=threshold,
            remaining_for_free=ZERO,
            matched_city=matched,
            eta=eta,
        )

    fee = rule.fee if rule else settings.default_fee
    return ShippingQuote(
        amount=round_money(non_negative(fee)),
        is_free=False,
        free_above_subtotal=threshold,
        remaining_for_free=round_money(threshold - subtotal) if threshold is not None else None,
        matched_city=matched,
        eta=eta,
    )
