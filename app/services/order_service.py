# app/services/order_service.py
import uuid
from datetime import datetime, timezone
from typing import Dict, Any

from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.database import transaction
from app.data.models.address import AddressModel
from app.data.models.cart import CartModel
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.domain.errors import AccessDenied, CartNotFound, EmptyCart, OrderNotFound, TransactionFailed
from app.domain.schemas import ShippingIn
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.repos.user_repo import UserRepo
from app.services.cart_pricing import CartPricing
from app.services.cart_reconciler import CartReconciler
from app.services.expiry_scheduler import ExpiryScheduler
from app.services.lock_service import LockService, checkout_session_lock_key
from app.services.payment_gateway import PaymentGateway
from app.utils.money import ZERO, to_cents
from app.utils.settings import (
    CHECKOUT_CANCEL_URL,
    CHECKOUT_LOCK_TTL_SECONDS,
    CHECKOUT_SUCCESS_URL,
    MAX_SAVED_ADDRESSES,
    STRIPE_CURRENCY,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class OrderService:
    """
    Zamowienia z koszyka.

    - gotowka: zamowienie od razu, w jednej transakcji z czyszczeniem koszyka
    - karta: najpierw sesja checkout w Stripe, zamowienie dopiero z webhooka
    Stanow nie ruszamy - zostaly zarezerwowane przy dodawaniu do koszyka.
    """

    def __init__(
        self,
        db: Session,
        scheduler: ExpiryScheduler | None = None,
        gateway: PaymentGateway | None = None,
        lock_service: LockService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.product_repo = ProductRepo(db)
        self.user_repo = UserRepo(db)
        self.reconciler = CartReconciler(db)
        self.pricing = CartPricing(db)
        self.scheduler = scheduler or ExpiryScheduler()
        self.gateway = gateway or PaymentGateway()
        self._lock_service = lock_service

    @property
    def lock_service(self) -> LockService:
        if self._lock_service is None:
            self._lock_service = LockService()
        return self._lock_service

    # ------------------------------------------------------------------ cash
    def create_cash_order(self, user_id: int, shipping: ShippingIn) -> Dict[str, Any]:
        with transaction(self.db):
            cart = self.cart_repo.get_cart_by_user(user_id)
            if not cart:
                raise CartNotFound()

            order, job_id, session_id = self._materialize(
                cart,
                shipping,
                payment_method="cash_on_delivery",
                payment_status="pending",
            )

        self.scheduler.cancel(job_id)
        self.gateway.expire_checkout_session(session_id)

        logger.info(f"Cash order {order.id} created for user {user_id}")
        return serialize_order(order)

    # ------------------------------------------------------------------ card
    def create_checkout_session(self, user_id: int, shipping: ShippingIn) -> Dict[str, Any]:
        with transaction(self.db):
            cart = self.cart_repo.get_cart_by_user(user_id)
            if not cart:
                raise CartNotFound()
            self.reconciler.reconcile(cart)
            self.pricing.recompute(cart)

        if not cart.items:
            raise EmptyCart()

        cart_id = cart.id
        params = self._checkout_params(cart, shipping)

        #max jedna zywa sesja na koszyk
        self.gateway.expire_checkout_session(cart.pending_checkout_session_id)

        session = self.gateway.create_checkout_session(**params)

        with transaction(self.db):
            cart = self.cart_repo.get_cart(cart_id)
            cart.pending_checkout_session_id = session["id"]

        logger.info(f"Checkout session {session['id']} created for cart {cart_id}")
        return {"session_id": session["id"], "session_url": session["url"]}

    def _checkout_params(self, cart: CartModel, shipping: ShippingIn) -> Dict[str, Any]:
        products = self.product_repo.get_many(item.product_id for item in cart.items)

        line_items = []
        for item in cart.items:
            product = products.get(item.product_id)
            name = product.title if product else f"Product {item.product_id}"
            if item.size:
                name = f"{name} ({item.size.upper()})"
            line_items.append(_price_line(name, item.price, item.quantity))

        if cart.tax_price and cart.tax_price > ZERO:
            line_items.append(_price_line("Tax", cart.tax_price, 1))
        if cart.shipping_price and cart.shipping_price > ZERO:
            line_items.append(_price_line("Shipping", cart.shipping_price, 1))

        params = {
            "mode": "payment",
            "line_items": line_items,
            "success_url": CHECKOUT_SUCCESS_URL,
            "cancel_url": CHECKOUT_CANCEL_URL,
            "client_reference_id": str(cart.id),
            #metadata wraca w webhooku, stripe trzyma tylko stringi
            "metadata": {
                "cart_id": str(cart.id),
                "user_id": str(cart.user_id),
                "phone": shipping.phone,
                "country": shipping.country,
                "state": shipping.state,
                "city": shipping.city,
                "street": shipping.street,
                "postal_code": shipping.postal_code,
                "coupon_id": cart.coupon_id or "",
            },
        }
        if cart.coupon_id:
            params["discounts"] = [{"promotion_code": cart.coupon_id}]
        return params

    def handle_webhook(self, payload: bytes, signature: str | None) -> Dict[str, Any]:
        """
        Podpis sprawdzany zawsze (blad -> 400). Po poprawnym podpisie zawsze 200,
        niezaleznie od wyniku, Stripe dostarcza eventy at-least-once.
        """
        event = self.gateway.parse_webhook_event(payload, signature)

        event_type = event.get("type")
        if event_type != CHECKOUT_COMPLETED:
            logger.info(f"Ignoring webhook event {event.get('id')} of type {event_type}")
            return {"received": True}

        session = (event.get("data") or {}).get("object") or {}
        try:
            self.complete_checkout(session)
        except Exception as e:
            logger.exception(f"Failed to create order for checkout session {session.get('id')}: {e}")

        return {"received": True}

    def complete_checkout(self, session: Dict[str, Any]) -> OrderModel | None:
        session_id = session.get("id")
        if not session_id:
            logger.warning("Checkout session event without id, ignoring")
            return None

        if session.get("payment_status") not in ("paid", "no_payment_required"):
            logger.info(f"Checkout session {session_id} is not paid yet ({session.get('payment_status')})")
            return None

        key = checkout_session_lock_key(session_id)
        owner = uuid.uuid4().hex
        if not self._acquire_lock(key, owner):
            logger.info(f"Checkout session {session_id} is already being processed")
            return None

        try:
            existing = self.repo.get_by_checkout_session(session_id)
            if existing:
                logger.info(f"Order {existing.id} already exists for checkout session {session_id}, duplicate delivery")
                return existing

            metadata = session.get("metadata") or {}
            cart_id = int(metadata["cart_id"])
            user_id = int(metadata["user_id"])
            shipping = ShippingIn(
                phone=metadata.get("phone"),
                country=metadata.get("country"),
                state=metadata.get("state"),
                city=metadata.get("city"),
                street=metadata.get("street"),
                postal_code=metadata.get("postal_code"),
            )

            try:
                with transaction(self.db):
                    cart = self.cart_repo.get_cart(cart_id)
                    if not cart or cart.user_id != user_id:
                        raise CartNotFound(f"No shopping cart {cart_id} for user {user_id}.")

                    order, job_id, stale_session_id = self._materialize(
                        cart,
                        shipping,
                        payment_method="credit_card",
                        payment_status="completed",
                        paid_at=datetime.now(timezone.utc),
                        checkout_session_id=session_id,
                    )
            except TransactionFailed as e:
                #unique na checkout_session_id - ktos inny zdazyl pierwszy
                if isinstance(e.__cause__, IntegrityError):
                    logger.info(f"Order for checkout session {session_id} created concurrently, skipping")
                    return self.repo.get_by_checkout_session(session_id)
                raise

            self.scheduler.cancel(job_id)
            if stale_session_id != session_id:
                self.gateway.expire_checkout_session(stale_session_id)

            logger.info(f"Card order {order.id} created from checkout session {session_id}")
            return order
        finally:
            self.lock_service.release(key, owner)

    def _acquire_lock(self, key: str, owner: str) -> bool:
        try:
            return self.lock_service.acquire(key, owner, CHECKOUT_LOCK_TTL_SECONDS)
        except RedisError as e:
            #bez redisa dalej chroni nas unique w bazie
            logger.warning(f"Lock service unavailable for {key}: {e}")
            return True

    # ------------------------------------------------------------------ shared
    def _materialize(
        self,
        cart: CartModel,
        shipping: ShippingIn,
        payment_method: str,
        payment_status: str,
        paid_at: datetime | None = None,
        checkout_session_id: str | None = None,
    ):
        """
        Koszyk -> zamowienie, w transakcji wolajacego.
        Zwraca (order, job do anulowania, sesja do wygaszenia) - sprzatanie po commicie.
        """
        self.reconciler.reconcile(cart)
        self.pricing.recompute(cart)

        if not cart.items:
            raise EmptyCart()

        products = self.product_repo.get_many(item.product_id for item in cart.items)

        order = OrderModel(
            user_id=cart.user_id,
            tax_price=cart.tax_price,
            shipping_price=cart.shipping_price,
            total_price=cart.total_price,
            total_price_after_discount=cart.total_price_after_discount,
            coupon_id=cart.coupon_id,
            coupon_code=cart.coupon_code,
            coupon_discount=cart.coupon_discount,
            coupon_discounted_amount=cart.coupon_discounted_amount,
            payment_method=payment_method,
            payment_status=payment_status,
            paid_at=paid_at,
            order_status="processing",
            checkout_session_id=checkout_session_id,
            phone=shipping.phone,
            country=shipping.country,
            state=shipping.state,
            city=shipping.city,
            street=shipping.street,
            postal_code=shipping.postal_code,
            items=[
                OrderItemModel(
                    product_id=item.product_id,
                    title=products[item.product_id].title if item.product_id in products else None,
                    quantity=item.quantity,
                    size=item.size,
                    color=item.color,
                    price=item.price,
                    total_price=item.total_price,
                )
                for item in cart.items
            ],
        )
        self.repo.add_order(order)

        for item in cart.items:
            self.product_repo.increment_sold(item.product_id, item.quantity)

        self._save_address(cart.user_id, shipping)

        job_id = cart.pending_expiry_job_id
        session_id = cart.pending_checkout_session_id

        cart.items.clear()
        cart.pending_checkout_session_id = None
        self.pricing.recompute(cart)

        return order, job_id, session_id

    def _save_address(self, user_id: int, shipping: ShippingIn) -> None:
        fields = {
            "country": shipping.country,
            "state": shipping.state,
            "city": shipping.city,
            "street": shipping.street,
            "postal_code": shipping.postal_code,
        }
        if self.user_repo.find_address(user_id, fields):
            return

        #bufor cykliczny, najstarszy adres wylatuje
        addresses = self.user_repo.list_addresses(user_id)
        while len(addresses) >= MAX_SAVED_ADDRESSES:
            self.user_repo.delete_address(addresses.pop(0))

        self.user_repo.add_address(AddressModel(user_id=user_id, **fields))

    # ------------------------------------------------------------------ queries
    def get_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise OrderNotFound()

        if order.user_id != user_id:
            raise AccessDenied()

        return serialize_order(order)

    def list_orders(self, user_id: int) -> list[Dict[str, Any]]:
        return [serialize_order(o) for o in self.repo.list_for_user(user_id)]


def _price_line(name: str, unit_price, quantity: int) -> Dict[str, Any]:
    return {
        "price_data": {
            "currency": STRIPE_CURRENCY,
            "product_data": {"name": name},
            "unit_amount": to_cents(unit_price),
        },
        "quantity": quantity,
    }


def serialize_order(order: OrderModel) -> Dict[str, Any]:
    coupon = None
    if order.coupon_code:
        coupon = {
            "coupon_id": order.coupon_id,
            "coupon_code": order.coupon_code,
            "coupon_discount": order.coupon_discount,
            "discounted_amount": order.coupon_discounted_amount,
        }

    return {
        "id": order.id,
        "user_id": order.user_id,
        "order_items": [
            {
                "product_id": i.product_id,
                "title": i.title,
                "quantity": i.quantity,
                "size": i.size,
                "color": i.color,
                "price": i.price,
                "total_price": i.total_price,
            }
            for i in order.items
        ],
        "pricing": {
            "tax_price": order.tax_price,
            "shipping_price": order.shipping_price,
            "total_price": order.total_price,
            "total_price_after_discount": order.total_price_after_discount,
        },
        "coupon": coupon,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "paid_at": order.paid_at,
        "order_status": order.order_status,
        "delivered_at": order.delivered_at,
        "phone": order.phone,
        "shipping_address": {
            "country": order.country,
            "state": order.state,
            "city": order.city,
            "street": order.street,
            "postal_code": order.postal_code,
        },
        "created_at": order.created_at,
    }
