# storefront/services/availability.py
from typing import Optional

from ..utils.money import D, round_money
from .types import CartLineRequest, CatalogEntry, ResolvedLine

MSG_NO_LONGER_AVAILABLE = "No longer available"
MSG_OUT_OF_STOCK = "Out of stock"


def availability_message(is_active: bool, available_stock: int, quantity: int) -> Optional[str]:
    if not is_active:
        return MSG_NO_LONGER_AVAILABLE
    if available_stock <= 0:
        return MSG_OUT_OF_STOCK
    if available_stock < quantity:
        return f"Only {available_stock} left in stock"
    return None


def resolve_line(req: CartLineRequest, entry: Optional[CatalogEntry]) -> ResolvedLine:
    """
    Build the display line for one cart request.
    A missing catalog entry is priced at zero and flagged, never raised.
    """
    if entry is None:
        return ResolvedLine(
            product_id=req.product_id,
            variant_id=req.variant_id,
            title="Item",
            slug="",
            image="",
            quantity=req.quantity,
            unit_price=D(0),
            line_total=D(0),
            available_stock=0,
            is_available=False,
            message=MSG_NO_LONGER_AVAILABLE,
        )

    stock = max(0, int(entry.available_stock or 0))
    message = availability_message(entry.is_active, stock, req.quantity)
    unit = round_money(entry.unit_price)

    return ResolvedLine(
        product_id=req.product_id,
        variant_id=req.variant_id,
        title=entry.title,
        slug=entry.slug,
        image=entry.image,
        quantity=req.quantity,
        unit_price=unit,
        line_total=round_money(unit * req.quantity),
        available_stock=stock,
        is_available=message is None,
        category_id=entry.category_id,
        original_unit_price=entry.original_unit_price,
        message=message,
        deal=entry.deal,
    )


def validate_lines(requests, entries) -> tuple:
    """entries: {(product_id, variant_id): CatalogEntry | None}"""
    return tuple(resolve_line(r, entries.get(r.key)) for r in requests)
