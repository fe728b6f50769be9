from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .services.types import CartLineRequest

MAX_AMOUNT = 1_000_000_000_000
MIN_EXCHANGE_RATE = 0.000001
MAX_EXCHANGE_RATE = 1_000_000


class CartLineIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: str = Field(alias="productId", min_length=1, max_length=64)
    variant_id: str = Field(default="", alias="variantId", max_length=64)
    quantity: int = Field(ge=1, le=99, strict=True)

    @field_validator("product_id", "variant_id", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    def to_line(self) -> CartLineRequest:
        return CartLineRequest(self.product_id, self.variant_id, self.quantity)


class ShippingAddressIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    city: Optional[str] = Field(default=None, max_length=80)
    state: Optional[str] = Field(default=None, max_length=80)
    country: Optional[str] = Field(default=None, max_length=80)


class QuoteIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items: List[CartLineIn] = Field(default_factory=list, max_length=100)
    coupon_code: Optional[str] = Field(default=None, alias="couponCode", max_length=50)
    city: Optional[str] = Field(default=None, max_length=80)
    shipping_address: Optional[ShippingAddressIn] = Field(default=None, alias="shippingAddress")
    display_currency: Optional[str] = Field(default=None, alias="displayCurrency", min_length=3, max_length=3)
    exchange_rate: Optional[float] = Field(default=None, alias="exchangeRate", ge=MIN_EXCHANGE_RATE, le=MAX_EXCHANGE_RATE)
    tax_amount: Optional[float] = Field(default=None, alias="taxAmount", ge=0, le=MAX_AMOUNT)

    @field_validator("coupon_code", "city", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("display_currency", mode="before")
    @classmethod
    def _upper(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    def lines(self):
        return tuple(i.to_line() for i in self.items)

    def destination_city(self) -> str:
        if self.city:
            return self.city
        if self.shipping_address and self.shipping_address.city:
            return self.shipping_address.city.strip()
        return ""


class ShippingEstimateIn(BaseModel):
    city: str = Field(default="", max_length=80)
    subtotal: float = Field(default=0, ge=0, le=MAX_AMOUNT)
