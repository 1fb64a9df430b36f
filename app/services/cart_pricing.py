# app/services/cart_pricing.py
from sqlalchemy.orm import Session

from app.data.models.cart import CartModel
from app.repos.settings_repo import SettingsRepo
from app.utils.money import ZERO, round2, to_decimal


class CartPricing:
    """
    Przelicza ceny koszyka na podstawie pozycji i globalnych ustawien.
    Wolane przed kazdym zapisem / zwroceniem koszyka, ceny z inputu sa ignorowane.
    """

    def __init__(self, db: Session):
        self.settings_repo = SettingsRepo(db)

    def recompute(self, cart: CartModel) -> CartModel:
        if not cart.items:
            #pusty koszyk = stan zerowy, bez kuponu i bez joba
            cart.tax_price = ZERO
            cart.shipping_price = ZERO
            cart.total_price = ZERO
            cart.total_price_after_discount = None
            clear_coupon(cart)
            cart.pending_expiry_job_id = None
            return cart

        subtotal = ZERO
        for item in cart.items:
            item.total_price = round2(round2(item.price) * item.quantity)
            subtotal += item.total_price

        #snapshot ustawien przy kazdym przeliczeniu, bez cache
        settings = self.settings_repo.get_pricing_settings()
        cart.tax_price = settings.tax_price
        cart.shipping_price = settings.shipping_price
        total = round2(subtotal + settings.tax_price + settings.shipping_price)
        cart.total_price = total

        if cart.coupon_code and cart.coupon_discount:
            discount = round2(total * to_decimal(cart.coupon_discount) / 100)
            cart.coupon_discounted_amount = discount
            cart.total_price_after_discount = round2(total - discount)
        else:
            cart.coupon_discounted_amount = None
            cart.total_price_after_discount = None

        return cart


def clear_coupon(cart: CartModel) -> None:
    cart.coupon_id = None
    cart.coupon_code = None
    cart.coupon_discount = None
    cart.coupon_discounted_amount = None
