# storefront/checkout/routes.py
from __future__ import annotations
import logging

from flask import current_app, request

from ..errors import QuoteValidationError
from ..schemas import QuoteIn, ShippingEstimateIn
from ..services.currency import present
from ..services.quote_service import quote_cart
from ..services.settings_service import get_shipping_settings
from ..services.shipping_service import compute_shipping
from ..utils.api import ok
from . import bp

logger = logging.getLogger("storefront.checkout")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise QuoteValidationError("Invalid payload", [{"field": "body", "message": "expected a JSON object"}])
    return data


@bp.post("/quote")
def quote():
    """
    Body: {
      "items": [{"productId": str, "variantId": str, "quantity": int}],
      "couponCode"?: str, "city"?: str, "shippingAddress"?: {"city": str},
      "displayCurrency"?: "PKR" | "USD", "exchangeRate"?: number, "taxAmount"?: number
    }
    """
    payload = QuoteIn.model_validate(_json_body())
    cfg = current_app.config
    base = cfg["BASE_CURRENCY"]

    q = quote_cart(
        payload.lines(),
        coupon_code=payload.coupon_code,
        city=payload.destination_city(),
        tax_amount=payload.tax_amount,
        compute_tax=current_app.extensions.get("storefront.tax"),
        coupon_policy=cfg["COUPON_REJECTION_POLICY"],
        currency=base,
    )

    data = q.as_api()
    if payload.display_currency and payload.display_currency != base:
        data["display"] = present(
            q,
            payload.display_currency,
            payload.exchange_rate,
            supported=cfg["SUPPORTED_CURRENCIES"],
        )
    return ok("quote", {"quote": data})


@bp.get("/shipping-estimate")
def shipping_estimate():
    """Query: ?city=<name>&subtotal=<amount in base currency>"""
    args = ShippingEstimateIn.model_validate(request.args.to_dict())
    est = compute_shipping(args.subtotal, args.city, get_shipping_settings())
    return ok("shipping estimate", {"currency": current_app.config["BASE_CURRENCY"], **est.as_api()})
