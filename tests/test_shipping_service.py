from decimal import Decimal

from storefront.services.shipping_service import (
    compute_shipping,
    delivery_eta,
    format_eta_text,
    match_city_rule,
    normalize_city,
    normalize_shipping_settings,
)
from storefront.services.types import ShippingSettings

RAW = {
    "defaultFee": 200,
    "freeAboveSubtotal": 5000,
    "etaDefault": {"minDays": 3, "maxDays": 5},
    "cityRules": [
        {"city": "Lahore", "fee": 150, "freeAboveSubtotal": 3000, "etaMinDays": 1, "etaMaxDays": 2},
        {"city": "  Rawalpindi   Cantt ", "fee": 180},
    ],
}


def test_normalize_city():
    assert normalize_city("  Rawalpindi \t  CANTT ") == "rawalpindi cantt"
    assert normalize_city(None) == ""


def test_city_match_is_case_and_whitespace_insensitive():
    s = normalize_shipping_settings(RAW)
    assert match_city_rule(s, "lahore ").city == "Lahore"
    assert match_city_rule(s, "rawalpindi cantt").fee == Decimal("180")
    assert match_city_rule(s, "") is None
    assert match_city_rule(s, "Multan") is None


def test_threshold_exactly_reached_is_free():
    s = normalize_shipping_settings(RAW)
    q = compute_shipping(Decimal("3000"), "Lahore", s)
    assert q.is_free is True
    assert q.amount == Decimal("0")
    assert q.free_above_subtotal == Decimal("3000")


def test_below_threshold_reports_remaining():
    s = normalize_shipping_settings(RAW)
    q = compute_shipping(Decimal("2750.50"), "Lahore", s)
    assert q.is_free is False
    assert q.amount == Decimal("150.00")
    assert q.remaining_for_free == Decimal("249.50")


def test_city_without_threshold_inherits_global_one():
    s = normalize_shipping_settings(RAW)
    q = compute_shipping(Decimal("4000"), "Rawalpindi Cantt", s)
    assert q.amount == Decimal("180.00")
    assert q.free_above_subtotal == Decimal("5000")
    assert q.remaining_for_free == Decimal("1000.00")
    assert compute_shipping(Decimal("5000"), "Rawalpindi Cantt", s).is_free


def test_no_threshold_never_free():
    s = ShippingSettings(default_fee=Decimal("200"))
    q = compute_shipping(Decimal("1000000"), "", s)
    assert q.is_free is False
    assert q.amount == Decimal("200.00")
    assert q.remaining_for_free is None


def test_remaining_decreases_monotonically_towards_threshold():
    s = normalize_shipping_settings(RAW)
    remaining = [compute_shipping(Decimal(x), "Lahore", s).remaining_for_free for x in (500, 1000, 2500, 2999)]
    assert remaining == sorted(remaining, reverse=True)
    assert compute_shipping(Decimal("3000"), "Lahore", s).is_free


def test_eta_uses_city_rule_only_when_both_days_present():
    s = normalize_shipping_settings(RAW)
    assert delivery_eta(s, match_city_rule(s, "Lahore")).text == "Delivery in 1–2 business days"
    assert delivery_eta(s, match_city_rule(s, "Rawalpindi Cantt")).text == "Delivery in 3–5 business days"


def test_eta_text():
    assert format_eta_text(2, 2) == "Delivery in 2 business days"
    assert format_eta_text(1, 1) == "Delivery in 1 business day"
    assert format_eta_text(0, 0) == ""
    assert format_eta_text(5, 3) == "Delivery in 3–5 business days"


def test_settings_are_clamped_and_cleaned():
    s = normalize_shipping_settings({
        "defaultFee": -50,
        "freeAboveSubtotal": "not a number",
        "etaDefault": {"minDays": -3, "maxDays": 400},
        "cityRules": [{"city": "", "fee": 10}, "junk", {"city": "Quetta", "fee": "abc", "etaMinDays": 90, "etaMaxDays": 99}],
    })
    assert s.default_fee == Decimal("0")
    assert s.free_above_subtotal is None
    assert (s.eta_min_days, s.eta_max_days) == (0, 60)
    assert len(s.city_rules) == 1
    quetta = s.city_rules[0]
    assert quetta.fee == Decimal("0")
    assert (quetta.eta_min_days, quetta.eta_max_days) == (60, 60)


def test_non_finite_and_huge_amounts_fall_back():
    s = normalize_shipping_settings({
        "defaultFee": "Infinity",
        "freeAboveSubtotal": "1e40",
        "cityRules": [{"city": "Lahore", "fee": "NaN"}, {"city": "Multan", "fee": "1e40"}],
    })
    assert s.default_fee == Decimal("0")
    assert s.free_above_subtotal is None
    assert [r.fee for r in s.city_rules] == [Decimal("0"), Decimal("0")]
    assert compute_shipping(Decimal("100"), "", s).amount == Decimal("0")
    assert compute_shipping(Decimal("100"), "lahore", s).amount == Decimal("0")


def test_missing_settings_document_uses_defaults():
    s = normalize_shipping_settings(None)
    assert s.default_fee == Decimal("0")
    assert s.free_above_subtotal is None
    assert (s.eta_min_days, s.eta_max_days) == (3, 5)
    assert s.city_rules == ()


def test_negative_subtotal_is_floored():
    s = normalize_shipping_settings(RAW)
    q = compute_shipping(Decimal("-10"), "Lahore", s)
    assert q.remaining_for_free == Decimal("3000.00")
