from sqlalchemy import Column, Integer, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from app.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    #slaba referencja, bez FK - produkt moze zniknac, reconciler wtedy wyrzuca pozycje
    product_id = Column(Integer, nullable=False)

    quantity = Column(Integer, nullable=False)
    size = Column(String(8), nullable=True)
    color = Column(String(32), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)  # last synced unit price
    total_price = Column(Numeric(10, 2), nullable=False, default=0)

    cart = relationship("CartModel", back_populates="items")
