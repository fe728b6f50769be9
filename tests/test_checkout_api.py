from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from storefront.model import Coupon, Deal, Product, ProductVariant, Promotion
from storefront.services.catalog_service import SqlCatalog
from storefront.services.quote_service import utcnow
from storefront.services.settings_service import save_shipping_settings


@pytest.fixture
def catalog(db):
    kurta = Product(title="Cotton Kurta", slug="cotton-kurta", base_price=500, stock=20,
                    images=["/img/kurta.jpg"], category_id="apparel")
    kurta.variants = [ProductVariant(id="kurta-m", sku="KRT-M", price=500, stock=10, images=["/img/kurta-m.jpg"]),
                      ProductVariant(id="kurta-l", sku="KRT-L", price=None, stock=2)]
    shawl = Product(id="shawl", title="Shawl", slug="shawl", base_price=2000, stock=4)
    retired = Product(id="retired", title="Old", slug="old", base_price=900, stock=5, is_active=False)
    kurta.id = "kurta"
    db.session.add_all([kurta, shawl, retired])
    save_shipping_settings({
        "defaultFee": 200,
        "etaDefault": {"minDays": 2, "maxDays": 4},
        "cityRules": [{"city": "Lahore", "fee": 150, "freeAboveSubtotal": 3000, "etaMinDays": 1, "etaMaxDays": 1}],
    })
    db.session.add(Coupon(code="SAVE10", ctype="percent", value=10, min_subtotal=500))
    db.session.commit()
    return {"kurta": kurta, "shawl": shawl}


def _quote(client, **body):
    r = client.post("/checkout/quote", json=body)
    return r, (r.get_json() or {})


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.get_json()["ok"] is True


def test_quote_scenario_a(client, catalog):
    r, body = _quote(client, items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 2}])
    assert r.status_code == 200, body
    q = body["data"]["quote"]
    assert body["status"] is True
    assert q["itemsSubtotal"] == 1000.0
    assert q["discountAmount"] == 0.0
    assert q["shippingAmount"] == 200.0
    assert q["totalAmount"] == 1200.0
    assert q["items"][0]["image"] == "/img/kurta-m.jpg"
    assert q["deliveryEta"]["text"] == "Delivery in 2–4 business days"


def test_quote_with_coupon_and_city(client, catalog):
    r, body = _quote(
        client,
        items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 2}],
        couponCode=" save10 ",
        shippingAddress={"city": "  LAHORE "},
    )
    q = body["data"]["quote"]
    assert q["discountAmount"] == 100.0
    assert q["appliedCouponCode"] == "SAVE10"
    assert q["coupon"]["ok"] is True
    assert q["shippingAmount"] == 150.0
    assert q["shippingRemainingForFree"] == 2100.0
    assert q["deliveryEta"]["text"] == "Delivery in 1 business day"
    assert q["totalAmount"] == 1050.0


def test_unknown_coupon_is_reported_not_fatal(client, catalog):
    r, body = _quote(client, items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 1}], couponCode="NOPE")
    assert r.status_code == 200
    assert body["data"]["quote"]["coupon"]["reason"] == "not_found"


def test_reject_policy_returns_422(app, client, catalog):
    app.config["COUPON_REJECTION_POLICY"] = "reject"
    r, body = _quote(client, items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 1}], couponCode="NOPE")
    assert r.status_code == 422
    assert body["status"] is False
    assert body["data"]["coupon"]["reason"] == "not_found"


def test_unavailable_lines_do_not_fail_quote(client, catalog):
    r, body = _quote(client, items=[
        {"productId": "kurta", "variantId": "kurta-l", "quantity": 5},
        {"productId": "retired", "variantId": "", "quantity": 1},
        {"productId": "missing", "variantId": "x", "quantity": 1},
        {"productId": "shawl", "variantId": "", "quantity": 1},
    ])
    assert r.status_code == 200
    q = body["data"]["quote"]
    msgs = [i["message"] for i in q["items"]]
    assert msgs == ["Only 2 left in stock", "No longer available", "No longer available", None]
    # variant without its own price inherits the product base price
    assert q["items"][0]["unitPrice"] == 500.0
    assert q["itemsSubtotal"] == 2000.0
    assert q["anyUnavailable"] is True


def test_promotion_applied_automatically(client, db, catalog):
    db.session.add_all([
        Promotion(name="Low", ptype="fixed", value=80, priority=5),
        Promotion(name="High", ptype="fixed", value=120, priority=5),
        Promotion(name="Future", ptype="fixed", value=999, priority=9, starts_at=utcnow() + timedelta(days=2)),
    ])
    db.session.commit()
    r, body = _quote(client, items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 2}])
    q = body["data"]["quote"]
    assert q["appliedPromotionName"] == "High"
    assert q["discountAmount"] == 120.0
    assert q["promotionDiscountAmount"] == 120.0
    assert q["couponDiscountAmount"] == 0.0


def test_deal_lowers_unit_price(client, db, catalog):
    now = utcnow()
    db.session.add(Deal(name="Shawl week", dtype="percent", value=25, priority=1,
                        starts_at=now - timedelta(days=1), ends_at=now + timedelta(days=1),
                        products=[catalog["shawl"]]))
    db.session.commit()
    r, body = _quote(client, items=[{"productId": "shawl", "variantId": "", "quantity": 1}])
    item = body["data"]["quote"]["items"][0]
    assert item["unitPrice"] == 1500.0
    assert item["originalUnitPrice"] == 2000.0
    assert item["deal"]["label"] == "-25%"


def test_empty_cart(client, catalog):
    r, body = _quote(client, items=[])
    assert r.status_code == 200
    q = body["data"]["quote"]
    assert q["items"] == []
    assert q["totalAmount"] == 0.0
    assert q["shippingAmount"] == 0.0


@pytest.mark.parametrize("item", [
    {"productId": "kurta", "variantId": "kurta-m", "quantity": 0},
    {"productId": "kurta", "variantId": "kurta-m", "quantity": -1},
    {"productId": "   ", "variantId": "kurta-m", "quantity": 1},
    {"productId": "kurta", "variantId": "kurta-m", "quantity": "2"},
    {"variantId": "kurta-m", "quantity": 1},
])
def test_validation_errors(client, catalog, item):
    r, body = _quote(client, items=[item])
    assert r.status_code == 400
    assert body["status"] is False
    assert body["data"]["errors"]


@pytest.mark.parametrize("extra", [
    {"taxAmount": 1e30},
    {"displayCurrency": "USD", "exchangeRate": 1e-30},
    {"displayCurrency": "USD", "exchangeRate": 1e30},
])
def test_out_of_range_amounts_are_rejected(client, catalog, extra):
    r, body = _quote(client, items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 1}], **extra)
    assert r.status_code == 400
    assert body["data"]["errors"]


def test_shipping_estimate_rejects_huge_subtotal(client, catalog):
    r = client.get("/checkout/shipping-estimate?city=lahore&subtotal=1e30")
    assert r.status_code == 400


def test_non_object_body(client):
    r = client.post("/checkout/quote", data="[1,2]", content_type="application/json")
    assert r.status_code == 400


def test_display_currency(client, catalog):
    r, body = _quote(client, items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 2}],
                     displayCurrency="usd", exchangeRate=250)
    data = body["data"]["quote"]
    assert data["totalAmount"] == 1200.0
    assert data["display"]["currency"] == "USD"
    assert data["display"]["totalAmount"] == 4.8


def test_display_currency_requires_rate(client, catalog):
    r, body = _quote(client, items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 2}], displayCurrency="USD")
    assert r.status_code == 400
    assert body["message"] == "Exchange rate is required"


def test_catalog_failure_is_retriable(client, catalog, monkeypatch):
    def boom(self, product_ids, now):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(SqlCatalog, "_active_deals", boom)
    r, body = _quote(client, items=[{"productId": "kurta", "variantId": "kurta-m", "quantity": 1}])
    assert r.status_code == 503
    assert r.headers["Retry-After"]
    assert body["message"] == "could not price your cart, try again"


def test_missing_shipping_settings_fall_back_to_free(client, db, caplog):
    db.session.add(Product(id="solo", title="Solo", slug="solo", base_price=100, stock=1))
    db.session.commit()
    with caplog.at_level("WARNING", logger="storefront.shipping"):
        r, body = _quote(client, items=[{"productId": "solo", "variantId": "", "quantity": 1}])
    q = body["data"]["quote"]
    assert q["shippingAmount"] == 0.0
    assert q["shippingFreeAboveSubtotal"] is None
    assert any("shipping settings not configured" in m for m in caplog.messages)


def test_repeated_quotes_are_identical(client, catalog):
    payload = {"items": [{"productId": "kurta", "variantId": "kurta-m", "quantity": 2},
                         {"productId": "kurta", "variantId": "kurta-l", "quantity": 3}],
               "couponCode": "SAVE10", "city": "Lahore"}
    a = client.post("/checkout/quote", json=payload).get_data()
    b = client.post("/checkout/quote", json=payload).get_data()
    assert a == b


def test_shipping_estimate(client, catalog):
    r = client.get("/checkout/shipping-estimate?city=lahore&subtotal=3000")
    data = r.get_json()["data"]
    assert r.status_code == 200
    assert data["shippingIsFree"] is True
    assert data["matchedCity"] == "Lahore"
