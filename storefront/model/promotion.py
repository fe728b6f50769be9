# --- storefront/model/promotion.py ---

from ..extensions import db
from sqlalchemy.sql import func

class Promotion(db.Model):
    """Automatic, code-less cart discount."""
    __tablename__ = "promotion"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    # "percent" or "fixed"
    ptype = db.Column(db.String(16), nullable=False, default="percent")
    value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    priority = db.Column(db.Integer, nullable=False, default=0, index=True)

    active = db.Column(db.Boolean, default=True, index=True)
    min_subtotal = db.Column(db.Numeric(12, 2), nullable=True)
    max_discount = db.Column(db.Numeric(12, 2), nullable=True)
    starts_at = db.Column(db.DateTime, nullable=True)
    ends_at = db.Column(db.DateTime, nullable=True)

    applies_to = db.Column(db.String(16), nullable=False, default="all")
    category_ids = db.Column(db.JSON, default=list)
    product_ids = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())
