# storefront/model/setting.py
from sqlalchemy.sql import func
from ..extensions import db


class SiteSetting(db.Model):
    """Key/value store for admin-editable settings ("shipping", ...)."""
    __tablename__ = "site_setting"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), unique=True, nullable=False, index=True)
    value = db.Column(db.JSON, nullable=True)

    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())
