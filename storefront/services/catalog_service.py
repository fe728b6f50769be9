# storefront/services/catalog_service.py
import logging
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..errors import CatalogUnavailableError
from ..extensions import db
from ..model import Deal, Product
from ..model.deal import deal_product
from ..utils.money import D, ZERO, round_money
from .types import FIXED, PERCENT, CatalogEntry, DealInfo

logger = logging.getLogger("storefront.catalog")

Key = Tuple[str, str]


# ---- deal pricing -------------------------------------------------------------

def compute_deal_price(original, dtype: str, value):
    original = D(original)
    value = D(value)
    if value <= 0:
        return round_money(original)
    if dtype == PERCENT:
        pct = min(value, D(100))
        return round_money(original * (D(100) - pct) / D(100))
    if dtype == FIXED:
        return round_money(max(ZERO, original - value))
    return round_money(original)


def build_deal_label(dtype: str, value) -> str:
    value = D(value)
    if dtype == PERCENT:
        return f"-{value.normalize():f}%"
    return f"-{round_money(value):.2f} off"


def best_deals_by_product(deals: Iterable[Deal]) -> Dict[str, Deal]:
    """First deal per product after sorting by priority desc, created_at desc, id desc."""
    ordered = sorted(
        deals,
        key=lambda d: (-(d.priority or 0), -(d.created_at.timestamp() if d.created_at else 0), -d.id),
    )
    best = {}
    for d in ordered:
        for p in d.products:
            best.setdefault(p.id, d)
    return best


# ---- resolver -----------------------------------------------------------------

def entry_for(product: Optional[Product], variant_id: str, deal: Optional[Deal] = None) -> Optional[CatalogEntry]:
    if product is None:
        return None

    unit_price = D(product.base_price)
    stock = int(product.stock or 0)
    image = product.main_image()

    variant = product.find_variant(variant_id)
    if variant is not None:
        if variant.price is not None:
            unit_price = D(variant.price)
        stock = int(variant.stock or 0)
        image = variant.main_image() or image

    original = None
    deal_info = None
    if deal is not None and (deal.dtype or "").lower() in (PERCENT, FIXED):
        dtype = deal.dtype.lower()
        original = round_money(unit_price)
        unit_price = compute_deal_price(unit_price, dtype, deal.value)
        deal_info = DealInfo(
            id=str(deal.id),
            name=deal.name or "",
            label=build_deal_label(dtype, deal.value),
            expires_at=deal.ends_at,
        )

    return CatalogEntry(
        product_id=product.id,
        variant_id=variant_id,
        title=product.title or "Item",
        slug=product.slug or "",
        image=image,
        unit_price=round_money(unit_price),
        available_stock=max(0, stock),
        is_active=bool(product.is_active),
        category_id=product.category_id or "",
        original_unit_price=original,
        deal=deal_info,
    )


class SqlCatalog:
    """Catalog lookups against the storefront database, one batched read per quote."""

    def __init__(self, session=None):
        self.session = session or db.session

    def _active_deals(self, product_ids, now: datetime):
        return (
            self.session.query(Deal)
            .join(deal_product, deal_product.c.deal_id == Deal.id)
            .filter(
                deal_product.c.product_id.in_(product_ids),
                Deal.active.is_(True),
                Deal.starts_at <= now,
                Deal.ends_at > now,
            )
            .distinct()
            .all()
        )

    def resolve(self, keys: Iterable[Key], now: datetime) -> Dict[Key, Optional[CatalogEntry]]:
        keys = list(dict.fromkeys(keys))
        product_ids = sorted({pid for pid, _ in keys if pid})
        if not product_ids:
            return {k: None for k in keys}

        try:
            products = self.session.query(Product).filter(Product.id.in_(product_ids)).all()
            deals = best_deals_by_product(self._active_deals(product_ids, now))
        except SQLAlchemyError as e:
            logger.exception("catalog read failed for %d products", len(product_ids))
            raise CatalogUnavailableError() from e

        pmap = {p.id: p for p in products}
        return {
            (pid, vid): entry_for(pmap.get(pid), vid, deals.get(pid))
            for pid, vid in keys
        }
