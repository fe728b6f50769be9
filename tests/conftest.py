from datetime import datetime
from decimal import Decimal

import pytest

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db as _db
from storefront.services.quote_service import PricingContext
from storefront.services.types import (
    CartLineRequest,
    CatalogEntry,
    CouponRule,
    PromotionRule,
    ShippingSettings,
)

NOW = datetime(2025, 6, 1, 12, 0, 0)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


# ---- pure builders ------------------------------------------------------------

def entry(pid="p1", vid="v1", price="500", stock=10, active=True, category="apparel", **kw):
    return CatalogEntry(
        product_id=pid,
        variant_id=vid,
        title=kw.pop("title", f"Product {pid}"),
        slug=kw.pop("slug", pid),
        image=kw.pop("image", ""),
        unit_price=Decimal(price),
        available_stock=stock,
        is_active=active,
        category_id=category,
        **kw,
    )


def line(pid="p1", vid="v1", qty=1):
    return CartLineRequest(pid, vid, qty)


def coupon(code="SAVE10", ctype="percent", value="10", min_order="0", **kw):
    return CouponRule(code=code, ctype=ctype, value=Decimal(value), min_order_amount=Decimal(min_order), **kw)


def promo(pid="1", value="100", ptype="fixed", priority=0, min_order="0", **kw):
    return PromotionRule(
        id=pid,
        name=kw.pop("name", f"Promo {pid}"),
        ptype=ptype,
        value=Decimal(value),
        priority=priority,
        min_order_amount=Decimal(min_order),
        **kw,
    )


def context(entries=(), coupon_rule=None, promotions=(), shipping=None, now=NOW):
    return PricingContext(
        now=now,
        catalog={(e.product_id, e.variant_id): e for e in entries},
        coupon=coupon_rule,
        promotions=tuple(promotions),
        shipping=shipping or ShippingSettings(default_fee=Decimal("200")),
    )
