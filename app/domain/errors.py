# app/domain/errors.py


class ShopError(Exception):
    status_code = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# 400 - odrzucenie domenowe, konkretny powod dla klienta
class DomainError(ShopError):
    status_code = 400
    default_message = "The request could not be completed."


class OutOfStock(DomainError):
    default_message = "Unfortunately, this product is currently out of stock."


class InsufficientStock(DomainError):
    default_message = "Not enough items are available in stock."


class SizeRequired(DomainError):
    default_message = "Please select a product size."


class SizeNotFound(DomainError):
    default_message = "The size you selected is not available."


class EmptyCart(DomainError):
    default_message = "Shopping cart is empty."


class InvalidCoupon(DomainError):
    default_message = "Coupon code is invalid or no longer active."


# 404
class NotFoundError(ShopError):
    status_code = 404
    default_message = "Resource not found."


class ProductNotFound(NotFoundError):
    default_message = "Product not found."


class CartNotFound(NotFoundError):
    default_message = "No shopping cart for this user."


class CartItemNotFound(NotFoundError):
    default_message = "This product is not in your cart."


class OrderNotFound(NotFoundError):
    default_message = "Order not found."


class UserNotFound(NotFoundError):
    default_message = "User not found."


class AccessDenied(ShopError):
    status_code = 403
    default_message = "You do not have access to this resource."


# 500 - infrastruktura, nigdy nie pokazujemy przyczyny
class TransactionFailed(ShopError):
    pass


class PaymentProviderError(ShopError):
    default_message = "Payment provider is unavailable. Please try again."


class WebhookSignatureError(ShopError):
    status_code = 400
    default_message = "Webhook signature verification failed."
