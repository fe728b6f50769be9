# storefront/model/product.py
import uuid as _uuid
from sqlalchemy.sql import func
from ..extensions import db


def _new_id():
    return str(_uuid.uuid4())


class Product(db.Model):
    __tablename__ = "product"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    slug = db.Column(db.String(255), index=True)
    title = db.Column(db.String(255), nullable=False, index=True)
    category_id = db.Column(db.String(36), nullable=True, index=True)

    base_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, default=0)
    images = db.Column(db.JSON, default=list)          # ["https://...", ...]
    is_active = db.Column(db.Boolean, default=True, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    variants = db.relationship(
        "ProductVariant",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductVariant.id.asc()",
    )

    def main_image(self) -> str:
        imgs = [i for i in (self.images or []) if isinstance(i, str) and i.strip()]
        return imgs[0] if imgs else ""

    def find_variant(self, variant_id):
        if not variant_id:
            return None
        return next((v for v in self.variants if v.id == variant_id), None)


class ProductVariant(db.Model):
    __tablename__ = "product_variant"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    product_id = db.Column(db.String(36), db.ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = db.Column(db.String(64))
    size = db.Column(db.String(32))
    color = db.Column(db.String(32))

    # None -> inherit the product's base price
    price = db.Column(db.Numeric(12, 2), nullable=True)
    stock = db.Column(db.Integer, default=0)
    images = db.Column(db.JSON, default=list)

    def main_image(self) -> str:
        imgs = [i for i in (self.images or []) if isinstance(i, str) and i.strip()]
        return imgs[0] if imgs else ""
