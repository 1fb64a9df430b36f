from sqlalchemy import Column, Integer, ForeignKey, String, Numeric
from sqlalchemy.orm import relationship

from app.data.database import Base


class OrderItemModel(Base):
    """Snapshot of a cart line at checkout, detached from the live product."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = Column(Integer, nullable=False)
    title = Column(String(200), nullable=True)
    quantity = Column(Integer, nullable=False)
    size = Column(String(8), nullable=True)
    color = Column(String(32), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
