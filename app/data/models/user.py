from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from app.data.database import Base


class UserModel(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)

    addresses = relationship(
        "AddressModel",
        back_populates="user",
        order_by="AddressModel.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    cart = relationship("CartModel", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    orders = relationship("OrderModel", cascade="all, delete-orphan", passive_deletes=True)
