#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from app.data.models.user import UserModel
from app.data.models.address import AddressModel
from app.data.models.product import ProductModel, ProductSizeModel
from app.data.models.app_settings import AppSettingsModel
from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel

__all__ = [
    "UserModel",
    "AddressModel",
    "ProductModel",
    "ProductSizeModel",
    "AppSettingsModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
]
