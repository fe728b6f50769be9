# storefront/services/coupon_service.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from ..errors import CatalogUnavailableError
from ..extensions import db
from ..model import Coupon, Promotion
from ..utils.money import D, ZERO
from .discount_service import normalize_code
from .types import APPLIES_ALL, APPLIES_CATEGORIES, APPLIES_PRODUCTS, DISCOUNT_TYPES, PERCENT, CouponRule, PromotionRule

logger = logging.getLogger("storefront.coupons")

_APPLIES = {APPLIES_ALL, APPLIES_CATEGORIES, APPLIES_PRODUCTS}


def _ids(v) -> frozenset:
    return frozenset(str(x) for x in (v or []) if str(x).strip())

def _dtype(v) -> str:
    t = (v or "").lower().strip()
    return t if t in DISCOUNT_TYPES else PERCENT

def _applies(v) -> str:
    a = (v or "").lower().strip()
    return a if a in _APPLIES else APPLIES_ALL

def _cap(v):
    return None if v is None else D(v)


def to_coupon_rule(c: Coupon) -> CouponRule:
    return CouponRule(
        code=c.code.strip().upper(),
        ctype=_dtype(c.ctype),
        value=D(c.value),
        min_order_amount=D(c.min_subtotal) if c.min_subtotal is not None else ZERO,
        max_discount_amount=_cap(c.max_discount),
        starts_at=c.starts_at,
        expires_at=c.ends_at,
        usage_limit=c.max_uses,
        used_count=int(c.used_count or 0),
        is_active=bool(c.active),
        applies_to=_applies(c.applies_to),
        category_ids=_ids(c.category_ids),
        product_ids=_ids(c.product_ids),
    )


def to_promotion_rule(p: Promotion) -> PromotionRule:
    return PromotionRule(
        id=str(p.id),
        name=p.name or "",
        ptype=_dtype(p.ptype),
        value=D(p.value),
        priority=int(p.priority or 0),
        min_order_amount=D(p.min_subtotal) if p.min_subtotal is not None else ZERO,
        max_discount_amount=_cap(p.max_discount),
        starts_at=p.starts_at,
        expires_at=p.ends_at,
        is_active=bool(p.active),
        applies_to=_applies(p.applies_to),
        category_ids=_ids(p.category_ids),
        product_ids=_ids(p.product_ids),
    )


def find_coupon_by_code(code: str, session=None) -> Optional[CouponRule]:
    """Case-insensitive lookup. Returns None for unknown codes."""
    code = normalize_code(code)
    if not code:
        return None
    session = session or db.session
    try:
        c = session.query(Coupon).filter(func.upper(Coupon.code) == code).first()
    except SQLAlchemyError as e:
        logger.exception("coupon lookup failed for %s", code)
        raise CatalogUnavailableError() from e
    return to_coupon_rule(c) if c else None


def list_active_promotions(now: datetime, session=None) -> List[PromotionRule]:
    """Active, started and unexpired promotions; amount rules are checked by the resolver."""
    session = session or db.session
    try:
        rows = (
            session.query(Promotion)
            .filter(
                Promotion.active.is_(True),
                or_(Promotion.starts_at.is_(None), Promotion.starts_at <= now),
                or_(Promotion.ends_at.is_(None), Promotion.ends_at >= now),
            )
            .order_by(Promotion.priority.desc(), Promotion.id.asc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("promotion read failed")
        raise CatalogUnavailableError() from e
    return [to_promotion_rule(p) for p in rows]
