#app/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.errors import ShopError
from app.domain.schemas import (
    ItemIn,
    CouponIn,
    CartResponse,
)
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db=db)


def respond(message: str, cart: dict) -> CartResponse:
    return CartResponse(
        message=message,
        num_of_cart_items=len(cart["cart_items"]),
        data=cart,
    )


@router.get("/", response_model=CartResponse)
def get_cart(
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        return respond("Cart retrieved successfully.", svc.get_cart(user_id))
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/", response_model=CartResponse)
def add_item(
    payload: ItemIn,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        cart = svc.add_product(
            user_id=user_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
            size=payload.size,
        )
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return respond("Product added to cart successfully.", cart)


@router.put("/", response_model=CartResponse)
def update_item_quantity(
    payload: ItemIn,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        cart = svc.update_quantity(
            user_id=user_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
            size=payload.size,
        )
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return respond("Product quantity updated successfully.", cart)


#przed /{product_id}, inaczej "applycoupon" trafia w parametr
@router.put("/applycoupon", response_model=CartResponse)
def apply_coupon(
    payload: CouponIn,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        cart = svc.apply_coupon(user_id, payload.coupon_code)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return respond("Coupon applied successfully.", cart)


@router.delete("/{product_id}", response_model=CartResponse)
def remove_item(
    product_id: int,
    user_id: int = Query(...),
    size: str | None = Query(None),
    svc: CartService = Depends(get_service),
):
    try:
        cart = svc.remove_product(user_id, product_id, size)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return respond("Product removed from cart successfully.", cart)


@router.delete("/", response_model=CartResponse)
def clear_cart(
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        cart = svc.clear_cart(user_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return respond("All items cleared from cart successfully.", cart)
