# app/services/cart_reconciler.py
from sqlalchemy.orm import Session

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.data.models.product import ProductModel
from app.domain.stock import FlatStock
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger
from app.utils.money import round2

logger = get_logger(__name__)


class CartReconciler:
    """
    Synchronizuje pozycje koszyka z aktualnym katalogiem przed liczeniem cen
    i przed wyswietleniem. Produkty dociagane jawnie przez repo (jeden SELECT).

    Wyrzucone pozycje NIE zwracaja stanu - robi to tylko operacja, ktora
    swiadomie usuwa pozycje (remove / clear / expiry).
    """

    def __init__(self, db: Session):
        self.product_repo = ProductRepo(db)

    def reconcile(self, cart: CartModel) -> CartModel:
        if not cart.items:
            return cart

        products = self.product_repo.get_many(item.product_id for item in cart.items)
        for item in list(cart.items):
            if not sync_item(item, products.get(item.product_id)):
                logger.info(
                    f"Dropping stale item product={item.product_id} size={item.size} from cart {cart.id}"
                )
                cart.items.remove(item)
        return cart


def sync_item(item: CartItemModel, product: ProductModel | None) -> bool:
    """Updates ``item`` in place; False means the line no longer makes sense."""
    if product is None:
        return False

    stock = product.stock
    if isinstance(stock, FlatStock):
        if item.size:
            return False
        price = product.price
    else:
        if not item.size:
            return False
        entry = stock.find(item.size)
        if entry is None:
            return False
        price = entry.price

    if product.color and item.color != product.color:
        item.color = product.color
    if round2(item.price) != round2(price):
        item.price = round2(price)
    return True
