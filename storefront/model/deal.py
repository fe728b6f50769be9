# storefront/model/deal.py
from sqlalchemy.sql import func
from ..extensions import db

# product <-> deal link table
deal_product = db.Table(
    "deal_product",
    db.Column("deal_id", db.Integer, db.ForeignKey("deal.id", ondelete="CASCADE"), primary_key=True),
    db.Column("product_id", db.String(36), db.ForeignKey("product.id", ondelete="CASCADE"), primary_key=True),
)


class Deal(db.Model):
    """Time-boxed price cut on specific products (flash / super deals)."""
    __tablename__ = "deal"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    # "percent" or "fixed"
    dtype = db.Column(db.String(16), nullable=False, default="percent")
    value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    priority = db.Column(db.Integer, nullable=False, default=0)

    active = db.Column(db.Boolean, default=True, index=True)
    starts_at = db.Column(db.DateTime, nullable=False)
    ends_at = db.Column(db.DateTime, nullable=False)

    created_at = db.Column(db.DateTime, server_default=func.now())

    products = db.relationship("Product", secondary=deal_product, lazy="selectin")
