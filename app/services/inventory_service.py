# app/services/inventory_service.py
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from app.data.models.product import ProductModel
from app.domain.errors import InsufficientStock, ProductNotFound, SizeNotFound
from app.domain.stock import FlatStock, SizedStock, check_availability, cheapest_size
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reservation:
    product_id: int
    size: str | None
    quantity: int
    unit_price: Decimal
    color: str | None


class InventoryService:
    """
    Rezerwacja stanow magazynowych:
    - reserve: walidacja + atomowe zmniejszenie licznika
    - release: dokladna odwrotnosc (zwiekszenie tego samego licznika)
    - po kazdej zmianie rozmiarow przeliczane pola wyswietlane produktu
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise ProductNotFound(f"No product for this ID: {product_id}.")
        return product

    def reserve(self, product: ProductModel, quantity: int, size: str | None = None) -> Reservation:
        stock = product.stock
        entry = check_availability(stock, quantity, size)

        if isinstance(stock, FlatStock):
            rowcount = self.repo.decrement_flat(product.id, quantity)
            self.repo.reload_stock(product)
            if rowcount == 0:
                #ktos inny zdjal stan miedzy odczytem a UPDATE
                raise InsufficientStock(f"Only {product.quantity} item(s) are available in stock.")
            logger.info(f"Reserved {quantity} of product {product.id}, {product.quantity} left")
            return Reservation(product.id, None, quantity, product.price, product.color)

        rowcount = self.repo.decrement_size(product.id, entry.size, quantity)
        self.repo.reload_stock(product)
        if rowcount == 0:
            left = product.stock.find(entry.size)
            raise InsufficientStock(
                f"Only {left.quantity if left else 0} item(s) are available for size {entry.size.upper()}."
            )
        self._sync_display_fields(product)
        logger.info(f"Reserved {quantity} of product {product.id} size {entry.size}")
        return Reservation(product.id, entry.size, quantity, entry.price, product.color)

    def adjust(self, product: ProductModel, size: str | None, reserved: int, requested: int) -> None:
        """
        Zmiana ilosci pozycji ktora juz trzyma ``reserved`` sztuk.
        Dostepne = aktualny stan + to co ta pozycja juz zarezerwowala.
        """
        stock = product.stock
        if isinstance(stock, FlatStock):
            available = stock.quantity + reserved
            label = "in stock"
        else:
            entry = stock.find(size)
            if entry is None:
                raise SizeNotFound()
            available = entry.quantity + reserved
            label = f"for size {entry.size.upper()}"
            size = entry.size

        if requested > available:
            raise InsufficientStock(f"Only {available} item(s) are available {label}.")

        delta = requested - reserved
        if delta > 0:
            if isinstance(stock, FlatStock):
                rowcount = self.repo.decrement_flat(product.id, delta)
            else:
                rowcount = self.repo.decrement_size(product.id, size, delta)
            if rowcount == 0:
                raise InsufficientStock(f"Only {available} item(s) are available {label}.")
        elif delta < 0:
            if isinstance(stock, FlatStock):
                self.repo.increment_flat(product.id, -delta)
            else:
                self.repo.increment_size(product.id, size, -delta)

        self.repo.reload_stock(product)
        if isinstance(stock, SizedStock):
            self._sync_display_fields(product)

    def release(self, product_id: int, size: str | None, quantity: int) -> None:
        self.release_many([(product_id, size, quantity)])

    def release_many(self, lines) -> None:
        """
        Zwrot stanow dla wielu pozycji naraz (clear / expiry).
        Delty sumowane per (produkt, rozmiar), potem jeden UPDATE na pare.
        """
        deltas = OrderedDict()
        for product_id, size, quantity in lines:
            key = (product_id, size.lower() if size else None)
            deltas[key] = deltas.get(key, 0) + quantity

        if not deltas:
            return

        products = self.repo.get_many(pid for pid, _ in deltas)
        touched = OrderedDict()

        #locki na wierszach zawsze w kolejnosci (produkt, rozmiar)
        ordered = sorted(deltas.items(), key=lambda kv: (kv[0][0], kv[0][1] or ""))
        for (product_id, size_key), quantity in ordered:
            product = products.get(product_id)
            if not product:
                logger.warning(f"Product {product_id} no longer exists, skipping release of {quantity}")
                continue

            stock = product.stock
            if isinstance(stock, FlatStock):
                if size_key is not None:
                    logger.warning(f"Product {product_id} has no sizes anymore, skipping release")
                    continue
                self.repo.increment_flat(product_id, quantity)
            else:
                entry = stock.find(size_key)
                if entry is None:
                    logger.warning(f"Size {size_key} of product {product_id} is gone, skipping release")
                    continue
                self.repo.increment_size(product_id, entry.size, quantity)

            touched[product_id] = product
            logger.info(f"Released {quantity} of product {product_id} size {size_key}")

        for product in touched.values():
            self.repo.reload_stock(product)
            if product.sizes:
                self._sync_display_fields(product)

    def _sync_display_fields(self, product: ProductModel) -> None:
        #pola listy produktow = najtanszy rozmiar
        cheapest = cheapest_size(product.stock.entries)
        if cheapest is None:
            return
        product.price = cheapest.price
        product.price_before_discount = cheapest.price_before_discount
        product.discount_percent = cheapest.discount_percent
        product.quantity = cheapest.quantity
