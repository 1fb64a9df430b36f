# app/api/routers/orders.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.data.database import get_db
from app.domain.errors import ShopError
from app.domain.schemas import (
    ShippingIn,
    OrderOut,
    OrderResponse,
    OrderListResponse,
    CheckoutSessionOut,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])
webhook_router = APIRouter(tags=["webhook"])


def get_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.post("/cash", response_model=OrderResponse, status_code=201)
def create_cash_order(
    payload: ShippingIn,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    """
    Zamowienie za pobraniem z aktualnego koszyka, koszyk zostaje wyczyszczony.
    """
    try:
        order = svc.create_cash_order(user_id, payload)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return OrderResponse(
        message="Order created successfully.",
        num_of_order_items=len(order["order_items"]),
        data=order,
    )


@router.post("/checkout-session", response_model=CheckoutSessionOut)
def create_checkout_session(
    payload: ShippingIn,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    """
    Sesja platnosci kartą, zamowienie powstaje dopiero z webhooka.
    """
    try:
        session = svc.create_checkout_session(user_id, payload)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return CheckoutSessionOut(session_id=session["session_id"], session_url=session["session_url"])


@router.get("/", response_model=OrderListResponse)
def list_orders(
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    orders = svc.list_orders(user_id)
    return OrderListResponse(results=len(orders), data=orders)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_order(order_id, user_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@webhook_router.post("/webhook")
async def stripe_webhook(request: Request, svc: OrderService = Depends(get_service)):
    #surowe body - podpis liczony z bajtow, nie z JSONa
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        return await run_in_threadpool(svc.handle_webhook, payload, signature)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
