# ------ storefront/model/__init__.py ------

from .product import Product, ProductVariant
from .deal import Deal
from .coupon import Coupon
from .promotion import Promotion
from .setting import SiteSetting

__all__ = [
    "Product",
    "ProductVariant",
    "Deal",
    "Coupon",
    "Promotion",
    "SiteSetting",
]
