# --- storefront/model/coupon.py ---

from ..extensions import db
from sqlalchemy.sql import func

class Coupon(db.Model):
    __tablename__ = "coupon"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)

    # "percent" or "fixed"
    ctype = db.Column(db.String(16), nullable=False, default="percent")
    value = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    active = db.Column(db.Boolean, default=True, index=True)

    # Optional constraints
    min_subtotal = db.Column(db.Numeric(12, 2), nullable=True)    # require cart subtotal >= this
    max_discount = db.Column(db.Numeric(12, 2), nullable=True)    # cap on the computed discount
    max_uses = db.Column(db.Integer, nullable=True)               # global usage cap
    used_count = db.Column(db.Integer, nullable=False, default=0) # bumped when an order is placed
    starts_at = db.Column(db.DateTime, nullable=True)
    ends_at = db.Column(db.DateTime, nullable=True)

    # "all" | "categories" | "products"
    applies_to = db.Column(db.String(16), nullable=False, default="all")
    category_ids = db.Column(db.JSON, default=list)
    product_ids = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())
