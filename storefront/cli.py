# storefront/cli.py
import json
from datetime import datetime, timedelta, timezone

import click
from flask import current_app

from .extensions import db
from .model import Coupon, Deal, Product, ProductVariant, Promotion
from .services.quote_service import quote_cart, utcnow
from .services.settings_service import save_shipping_settings
from .services.types import CartLineRequest

DEMO_SHIPPING = {
    "defaultFee": 200,
    "freeAboveSubtotal": 5000,
    "etaDefault": {"minDays": 3, "maxDays": 5},
    "cityRules": [
        {"city": "Lahore", "fee": 150, "freeAboveSubtotal": 3000, "etaMinDays": 1, "etaMaxDays": 2},
        {"city": "Karachi", "fee": 250, "etaMinDays": 2, "etaMaxDays": 4},
    ],
}


def _parse_iso8601(s):
    if not s:
        return None
    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _parse_item(raw: str) -> CartLineRequest:
    parts = raw.split(":")
    if len(parts) != 3:
        raise click.BadParameter(f"expected PRODUCT:VARIANT:QTY, got {raw!r}")
    pid, vid, qty = parts
    try:
        qty = int(qty)
    except ValueError:
        raise click.BadParameter(f"quantity must be an integer in {raw!r}")
    if not pid.strip() or qty < 1:
        raise click.BadParameter(f"product id and a positive quantity are required in {raw!r}")
    return CartLineRequest(pid.strip(), vid.strip(), qty)


@click.command("seed-demo")
def seed_demo():
    """Insert a small demo catalog, a coupon, promotions and shipping settings."""
    if Product.query.filter_by(slug="cotton-kurta").first():
        click.echo("Demo data already present"); return

    now = utcnow()
    kurta = Product(title="Cotton Kurta", slug="cotton-kurta", base_price=500, stock=20,
                    images=["/img/kurta.jpg"], category_id="apparel")
    kurta.variants = [
        ProductVariant(sku="KRT-M", size="M", price=500, stock=10),
        ProductVariant(sku="KRT-L", size="L", price=550, stock=2),
    ]
    shawl = Product(title="Pashmina Shawl", slug="pashmina-shawl", base_price=2500, stock=5,
                    images=["/img/shawl.jpg"], category_id="accessories")
    retired = Product(title="Old Sandals", slug="old-sandals", base_price=900, stock=3, is_active=False)
    db.session.add_all([kurta, shawl, retired])
    db.session.flush()

    db.session.add(Deal(name="Shawl week", dtype="percent", value=20, priority=1,
                        starts_at=now - timedelta(days=1), ends_at=now + timedelta(days=6), products=[shawl]))
    db.session.add(Coupon(code="SAVE10", ctype="percent", value=10, min_subtotal=500, max_discount=1000))
    db.session.add(Promotion(name="Spend 3000 save 150", ptype="fixed", value=150, priority=5, min_subtotal=3000))
    db.session.add(Promotion(name="Sitewide 5%", ptype="percent", value=5, priority=1, max_discount=300))
    save_shipping_settings(DEMO_SHIPPING)
    db.session.commit()

    click.echo(f"Seeded products: {kurta.id} (variants {', '.join(v.id for v in kurta.variants)}), "
               f"{shawl.id}, {retired.id}")


@click.command("quote")
@click.option("--item", "items", multiple=True, required=True, help="PRODUCT:VARIANT:QTY (variant may be empty)")
@click.option("--coupon", default=None)
@click.option("--city", default="")
@click.option("--tax", type=float, default=None)
@click.option("--now", "now_raw", default=None, help="ISO-8601 timestamp to price at (default: current time)")
def quote_command(items, coupon, city, tax, now_raw):
    """Print the checkout quote for a cart as JSON."""
    try:
        now = _parse_iso8601(now_raw)
    except ValueError:
        raise click.BadParameter(f"invalid timestamp {now_raw!r}", param_hint="--now")
    lines = tuple(_parse_item(i) for i in items)
    q = quote_cart(
        lines,
        coupon_code=coupon,
        city=city,
        tax_amount=tax,
        coupon_policy="fallback",
        currency=current_app.config["BASE_CURRENCY"],
        now=now,
    )
    click.echo(json.dumps(q.as_api(), indent=2, sort_keys=True))


def register_cli(app):
    app.cli.add_command(seed_demo)
    app.cli.add_command(quote_command)
