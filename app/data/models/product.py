from sqlalchemy import Column, Integer, ForeignKey, String, Numeric
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.domain.stock import FlatStock, SizedStock, SizeEntry, StockModel


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    color = Column(String(32), nullable=True)

    #dla produktow z rozmiarami to sa pola do wyswietlania, kopiowane z najtanszego rozmiaru
    price = Column(Numeric(10, 2), nullable=False, default=0)
    price_before_discount = Column(Numeric(10, 2), nullable=True)
    discount_percent = Column(Integer, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)

    sold = Column(Integer, nullable=False, default=0)

    sizes = relationship(
        "ProductSizeModel",
        back_populates="product",
        order_by="ProductSizeModel.position",
        cascade="all, delete-orphan",
    )

    @property
    def stock(self) -> StockModel:
        if self.sizes:
            return SizedStock(
                entries=tuple(
                    SizeEntry(
                        size=s.size,
                        quantity=s.quantity,
                        price=s.price,
                        price_before_discount=s.price_before_discount,
                        discount_percent=s.discount_percent,
                    )
                    for s in self.sizes
                )
            )
        return FlatStock(quantity=self.quantity)


class ProductSizeModel(Base):
    __tablename__ = "product_sizes"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    size = Column(String(8), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False)
    price_before_discount = Column(Numeric(10, 2), nullable=True)
    discount_percent = Column(Integer, nullable=True)

    product = relationship("ProductModel", back_populates="sizes")
