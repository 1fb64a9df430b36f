from typing import Dict, Any

from sqlalchemy.orm import Session

from app.data.database import transaction
from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.domain.errors import CartItemNotFound, DomainError, InvalidCoupon
from app.domain.stock import same_size
from app.repos.cart_repo import CartRepo
from app.services.cart_pricing import CartPricing
from app.services.cart_reconciler import CartReconciler
from app.services.expiry_scheduler import ExpiryScheduler
from app.services.inventory_service import InventoryService
from app.services.payment_gateway import PaymentGateway
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use case'y koszyka, kazda komenda w jednej transakcji (stock + cart + job).

    commands: add, update, remove, clear, apply coupon, expire
    query: get (tez zapisuje - reconcile + przeliczenie cen)

    Joby i sesje platnosci poza transakcja: nowy job przed commitem (i anulowany
    przy bledzie), sprzatanie po commicie, best-effort.
    """

    def __init__(
        self,
        db: Session,
        scheduler: ExpiryScheduler | None = None,
        gateway: PaymentGateway | None = None,
    ):
        self.db = db
        self.repo = CartRepo(db)
        self.inventory = InventoryService(db)
        self.reconciler = CartReconciler(db)
        self.pricing = CartPricing(db)
        self.scheduler = scheduler or ExpiryScheduler()
        self.gateway = gateway or PaymentGateway()

    #query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        with transaction(self.db):
            cart = self.repo.get_or_create_cart(user_id)
            job_id = cart.pending_expiry_job_id
            self.reconciler.reconcile(cart)
            self.pricing.recompute(cart)

        #reconcile mogl wyrzucic wszystko, wtedy job jest juz zbedny
        if job_id and not cart.items:
            self.scheduler.cancel(job_id)

        return serialize_cart(cart)

    #commands
    def add_product(
        self,
        user_id: int,
        product_id: int,
        quantity: int,
        size: str | None = None,
    ) -> Dict[str, Any]:

        if quantity <= 0:
            raise DomainError("Quantity must be at least 1.")

        new_job_id = None
        try:
            with transaction(self.db):
                product = self.inventory.get_product(product_id)
                cart = self.repo.get_or_create_cart(user_id)

                reservation = self.inventory.reserve(product, quantity, size)

                self.reconciler.reconcile(cart)

                existing_item = find_item(cart, product.id, reservation.size)
                if existing_item:
                    logger.info(
                        f"Product {product.id} already in cart {cart.id}, quantity "
                        f"{existing_item.quantity} -> {existing_item.quantity + quantity}"
                    )
                    existing_item.quantity += quantity
                    existing_item.price = reservation.unit_price
                    existing_item.color = reservation.color
                else:
                    cart.items.insert(
                        0,
                        CartItemModel(
                            product_id=product.id,
                            quantity=quantity,
                            size=reservation.size,
                            color=reservation.color,
                            price=reservation.unit_price,
                        ),
                    )

                #pierwsza pozycja w koszyku -> job ktory zwolni stany po 30 min
                if not cart.pending_expiry_job_id:
                    new_job_id = self.scheduler.schedule(cart.id)
                    cart.pending_expiry_job_id = new_job_id

                self.pricing.recompute(cart)
        except Exception:
            #rollback cofnal koszyk, job nie moze wskazywac na stan ktorego nie ma
            if new_job_id:
                self.scheduler.cancel(new_job_id)
            raise

        logger.info(f"Product {product_id} (size={size}) x{quantity} added to cart of user {user_id}")
        return serialize_cart(cart)

    def update_quantity(
        self,
        user_id: int,
        product_id: int,
        quantity: int,
        size: str | None = None,
    ) -> Dict[str, Any]:

        if quantity <= 0:
            raise DomainError("Quantity must be at least 1.")

        with transaction(self.db):
            cart = self.repo.get_or_create_cart(user_id)
            self.reconciler.reconcile(cart)

            item = find_item(cart, product_id, size)
            if not item:
                raise CartItemNotFound()

            product = self.inventory.get_product(product_id)
            self.inventory.adjust(product, item.size, item.quantity, quantity)
            item.quantity = quantity

            self.pricing.recompute(cart)

        logger.info(f"Product {product_id} (size={size}) quantity set to {quantity} in cart {cart.id}")
        return serialize_cart(cart)

    def remove_product(
        self,
        user_id: int,
        product_id: int,
        size: str | None = None,
    ) -> Dict[str, Any]:

        job_to_cancel = None
        with transaction(self.db):
            cart = self.repo.get_or_create_cart(user_id)
            self.reconciler.reconcile(cart)

            item = find_item(cart, product_id, size)
            if not item:
                raise CartItemNotFound()

            self.inventory.release(item.product_id, item.size, item.quantity)
            cart.items.remove(item)

            if not cart.items:
                job_to_cancel = cart.pending_expiry_job_id

            self.pricing.recompute(cart)

        self.scheduler.cancel(job_to_cancel)

        logger.info(f"Product {product_id} (size={size}) removed from cart {cart.id}")
        return serialize_cart(cart)

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        with transaction(self.db):
            cart = self.repo.get_or_create_cart(user_id)

            self.inventory.release_many(
                (item.product_id, item.size, item.quantity) for item in cart.items
            )
            cart.items.clear()
            job_to_cancel = cart.pending_expiry_job_id

            self.pricing.recompute(cart)

        self.scheduler.cancel(job_to_cancel)

        logger.info(f"Cart {cart.id} cleared")
        return serialize_cart(cart)

    def apply_coupon(self, user_id: int, coupon_code: str) -> Dict[str, Any]:
        #tylko odczyt ze stripe + przeliczenie, bez zmian stanow
        promo = self.gateway.find_active_promotion_code(coupon_code)
        if not promo:
            raise InvalidCoupon()

        with transaction(self.db):
            cart = self.repo.get_or_create_cart(user_id)
            self.reconciler.reconcile(cart)

            if cart.items:
                cart.coupon_id = promo["id"]
                cart.coupon_code = promo["code"]
                cart.coupon_discount = promo["percent_off"]

            self.pricing.recompute(cart)

        logger.info(f"Coupon {coupon_code} applied to cart {cart.id}")
        return serialize_cart(cart)

    def expire_cart(self, cart_id: int, job_id: str) -> bool:
        """
        Handler joba wygasania. Dziala tylko jesli koszyk nadal wskazuje na ten job,
        inaczej (checkout, clear, nowy job) nic nie robi.
        """
        with transaction(self.db):
            cart = self.repo.get_cart(cart_id)
            if not cart:
                logger.info(f"Cart {cart_id} no longer exists, nothing to expire")
                return False

            if cart.pending_expiry_job_id != job_id:
                logger.info(
                    f"Job {job_id} is stale for cart {cart_id} "
                    f"(current: {cart.pending_expiry_job_id}), skipping"
                )
                return False

            self.inventory.release_many(
                (item.product_id, item.size, item.quantity) for item in cart.items
            )
            cart.items.clear()
            session_to_expire = cart.pending_checkout_session_id
            cart.pending_checkout_session_id = None

            self.pricing.recompute(cart)

        self.gateway.expire_checkout_session(session_to_expire)

        logger.info(f"Cart {cart_id} expired, reserved stock released")
        return True


def find_item(cart: CartModel, product_id: int, size: str | None) -> CartItemModel | None:
    for item in cart.items:
        if item.product_id == product_id and same_size(item.size, size):
            return item
    return None


def serialize_cart(cart: CartModel) -> Dict[str, Any]:
    coupon = None
    if cart.coupon_code:
        coupon = {
            "coupon_id": cart.coupon_id,
            "coupon_code": cart.coupon_code,
            "coupon_discount": cart.coupon_discount,
            "discounted_amount": cart.coupon_discounted_amount,
        }

    return {
        "id": cart.id,
        "user_id": cart.user_id,
        "cart_items": [
            {
                "product_id": i.product_id,
                "quantity": i.quantity,
                "size": i.size,
                "color": i.color,
                "price": i.price,
                "total_price": i.total_price,
            }
            for i in cart.items
        ],
        "pricing": {
            "tax_price": cart.tax_price,
            "shipping_price": cart.shipping_price,
            "total_price": cart.total_price,
            "total_price_after_discount": cart.total_price_after_discount,
        },
        "coupon": coupon,
    }
