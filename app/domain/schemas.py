# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List
from decimal import Decimal
from datetime import datetime


class CamelModel(BaseModel):
    """Wire format w camelCase (productId, numOfCartItems...), w kodzie snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------- cart input

class ItemIn(CamelModel):
    """Schema dla dodawania / zmiany ilosci produktu w koszyku."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(..., gt=0, description="Ilość produktu (musi być > 0)")
    size: str | None = Field(None, min_length=1, max_length=8, description="Rozmiar, wymagany dla produktow z rozmiarami")


class CouponIn(CamelModel):
    coupon_code: str = Field(..., min_length=3, max_length=32)


# ---------------------------------------------------------------- cart output

class CartItemOut(CamelModel):
    product_id: int
    quantity: int
    size: str | None = None
    color: str | None = None
    price: Decimal
    total_price: Decimal


class PricingOut(CamelModel):
    tax_price: Decimal
    shipping_price: Decimal
    total_price: Decimal
    total_price_after_discount: Decimal | None = None


class CouponOut(CamelModel):
    coupon_id: str | None = None
    coupon_code: str
    coupon_discount: Decimal | None = None
    discounted_amount: Decimal | None = None


class CartOut(CamelModel):
    id: int
    user_id: int
    cart_items: List[CartItemOut]
    pricing: PricingOut
    coupon: CouponOut | None = None


class CartResponse(CamelModel):
    status: str = "success"
    message: str
    num_of_cart_items: int
    data: CartOut


# ---------------------------------------------------------------- orders

class ShippingIn(CamelModel):
    """Dane dostawy - gotowka i sesja checkout."""

    phone: str = Field(..., pattern=r"^\+?\d{8,15}$")
    country: str = Field(..., min_length=2, max_length=50)
    state: str = Field(..., min_length=2, max_length=50)
    city: str = Field(..., min_length=2, max_length=50)
    street: str = Field(..., min_length=5, max_length=100)
    postal_code: str = Field(..., pattern=r"^\d{4,10}$")


class ShippingAddressOut(CamelModel):
    country: str
    state: str
    city: str
    street: str
    postal_code: str


class OrderItemOut(CamelModel):
    product_id: int
    title: str | None = None
    quantity: int
    size: str | None = None
    color: str | None = None
    price: Decimal
    total_price: Decimal


class OrderOut(CamelModel):
    id: int
    user_id: int
    order_items: List[OrderItemOut]
    pricing: PricingOut
    coupon: CouponOut | None = None
    payment_method: str
    payment_status: str
    paid_at: datetime | None = None
    order_status: str
    delivered_at: datetime | None = None
    phone: str
    shipping_address: ShippingAddressOut
    created_at: datetime


class OrderResponse(CamelModel):
    status: str = "success"
    message: str
    num_of_order_items: int
    data: OrderOut


class OrderListResponse(CamelModel):
    status: str = "success"
    results: int
    data: List[OrderOut]


class CheckoutSessionOut(BaseModel):
    session_id: str = Field(..., alias="sessionId")
    session_url: str = Field(..., alias="sessionURL")

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------- users

class UserCreate(BaseModel):
    """Schema dla tworzenia użytkownika."""

    id: int = Field(..., gt=0, description="ID użytkownika (musi być > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Imię użytkownika")


class UserRead(BaseModel):
    """Schema dla użytkownika (response)."""

    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class AddressOut(CamelModel):
    id: int
    country: str
    state: str
    city: str
    street: str
    postal_code: str
    created_at: datetime
