# storefront/services/settings_service.py
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..errors import CatalogUnavailableError
from ..extensions import db
from ..model import SiteSetting
from .shipping_service import missing_shipping_settings, normalize_shipping_settings
from .types import ShippingSettings

logger = logging.getLogger("storefront.settings")

SHIPPING_KEY = "shipping"


def get_shipping_settings(session=None) -> ShippingSettings:
    session = session or db.session
    try:
        row = session.query(SiteSetting).filter_by(key=SHIPPING_KEY).first()
    except SQLAlchemyError as e:
        logger.exception("shipping settings read failed")
        raise CatalogUnavailableError() from e
    if row is None or not isinstance(row.value, dict):
        return missing_shipping_settings()
    return normalize_shipping_settings(row.value)


def save_shipping_settings(raw: dict, session=None) -> ShippingSettings:
    session = session or db.session
    row = session.query(SiteSetting).filter_by(key=SHIPPING_KEY).first()
    if row is None:
        row = SiteSetting(key=SHIPPING_KEY)
        session.add(row)
    row.value = raw
    session.flush()
    return normalize_shipping_settings(raw)
