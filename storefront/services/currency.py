# storefront/services/currency.py
"""Base -> display currency conversion. Presentation only."""
from typing import Optional

from ..errors import QuoteValidationError
from ..utils.money import D, money_float, optional_money_float, round_money

# Rates are always quoted the way the storefront receives them: units of the
# local currency per one USD (e.g. pkrPerUsd = 278.5).
RATE_QUOTE_CURRENCY = "USD"


def conversion_factor(base: str, display: str, exchange_rate) -> Optional[object]:
    """Multiplier from base amounts to display amounts; None when they are the same currency."""
    base, display = base.upper(), display.upper()
    if display == base:
        return None
    rate = D(exchange_rate) if exchange_rate is not None else None
    if rate is None or not rate.is_finite() or rate <= 0:
        raise QuoteValidationError(
            "Exchange rate is required",
            [{"field": "exchangeRate", "message": f"a positive rate is required to display {display}"}],
        )
    if display == RATE_QUOTE_CURRENCY:
        return 1 / rate
    return rate


def convert(amount, factor):
    if amount is None:
        return None
    if factor is None:
        return round_money(amount)
    return round_money(D(amount) * factor)


def present(quote, display_currency: Optional[str], exchange_rate=None, supported=("PKR", "USD")) -> dict:
    display = (display_currency or quote.currency).upper()
    allowed = [c.upper() for c in supported]
    if display not in allowed:
        raise QuoteValidationError(
            "Unsupported currency",
            [{"field": "displayCurrency", "message": f"must be one of {', '.join(allowed)}"}],
        )
    factor = conversion_factor(quote.currency, display, exchange_rate)

    def conv(x):
        return money_float(convert(x, factor))

    return {
        "currency": display,
        "baseCurrency": quote.currency,
        "exchangeRate": None if factor is None else float(D(exchange_rate)),
        "itemsSubtotal": conv(quote.items_subtotal),
        "discountAmount": conv(quote.discount_amount),
        "shippingAmount": conv(quote.shipping.amount),
        "shippingRemainingForFree": optional_money_float(convert(quote.shipping.remaining_for_free, factor)),
        "taxAmount": conv(quote.tax_amount),
        "totalAmount": conv(quote.total_amount),
        "lines": [
            {
                "productId": l.product_id,
                "variantId": l.variant_id,
                "unitPrice": conv(l.unit_price),
                "lineTotal": conv(l.line_total),
            }
            for l in quote.items
        ],
    }
