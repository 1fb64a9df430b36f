from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from app.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    tax_price = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_price = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False)
    total_price_after_discount = Column(Numeric(10, 2), nullable=True)

    coupon_id = Column(String, nullable=True)
    coupon_code = Column(String(32), nullable=True)
    coupon_discount = Column(Numeric(5, 2), nullable=True)  # percent, moze byc ulamkowy (12.5)
    coupon_discounted_amount = Column(Numeric(10, 2), nullable=True)

    payment_method = Column(String, nullable=False)  # cash_on_delivery, credit_card
    payment_status = Column(String, nullable=False, default="pending")  # pending, completed, failed
    paid_at = Column(DateTime(timezone=True), nullable=True)
    order_status = Column(String, nullable=False, default="processing")  # processing, shipped, delivered, cancelled
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    #klucz idempotencji dla webhooka - jedna sesja checkout = max jedno zamowienie
    checkout_session_id = Column(String, nullable=True, unique=True)

    phone = Column(String(16), nullable=False)
    country = Column(String(50), nullable=False)
    state = Column(String(50), nullable=False)
    city = Column(String(50), nullable=False)
    street = Column(String(100), nullable=False)
    postal_code = Column(String(10), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        order_by="OrderItemModel.id",
        cascade="all, delete-orphan",
    )
