# app/repos/cart_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.data.models.cart import CartModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .options(selectinload(CartModel.items))
            .where(CartModel.id == cart_id)
            .with_for_update()
        ).scalar_one_or_none()

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .options(selectinload(CartModel.items))
            .where(CartModel.user_id == user_id)
            .with_for_update()
        ).scalar_one_or_none()

    def get_or_create_cart(self, user_id: int) -> CartModel:
        cart = self.get_cart_by_user(user_id)
        if cart:
            return cart

        cart = CartModel(user_id=user_id)
        self.db.add(cart)
        self.db.flush()
        return cart
