#app/data/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, Numeric
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from app.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    #pricing - zawsze przeliczane, nigdy nie brane z inputu
    tax_price = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_price = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    total_price_after_discount = Column(Numeric(10, 2), nullable=True)

    #kupon (promotion code ze stripe)
    coupon_id = Column(String, nullable=True)
    coupon_code = Column(String(32), nullable=True)
    coupon_discount = Column(Numeric(5, 2), nullable=True)  # percent, moze byc ulamkowy (12.5)
    coupon_discounted_amount = Column(Numeric(10, 2), nullable=True)

    pending_expiry_job_id = Column(String, nullable=True)
    pending_checkout_session_id = Column(String, nullable=True)

    #nowe pozycje na poczatku listy, position przenumerowane przez ordering_list
    items = relationship(
        "CartItemModel",
        back_populates="cart",
        order_by="CartItemModel.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )
