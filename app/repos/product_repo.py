# app/repos/product_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from app.data.models.product import ProductModel, ProductSizeModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel)
            .options(selectinload(ProductModel.sizes))
            .where(ProductModel.id == product_id)
        ).scalar_one_or_none()

    def get_many(self, product_ids) -> dict[int, ProductModel]:
        ids = set(product_ids)
        if not ids:
            return {}
        products = self.db.execute(
            select(ProductModel)
            .options(selectinload(ProductModel.sizes))
            .where(ProductModel.id.in_(ids))
        ).scalars().all()
        return {p.id: p for p in products}

    def reload_stock(self, product: ProductModel) -> ProductModel:
        """Pull counters written by the UPDATEs below back into the session objects."""
        if not product.sizes:
            self.db.expire(product, ["quantity"])
            return product

        self.db.execute(
            select(ProductSizeModel)
            .where(ProductSizeModel.product_id == product.id)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return product

    #atomowe UPDATE ... WHERE quantity >= q, 0 rows = ktos nas wyprzedzil
    def decrement_flat(self, product_id: int, quantity: int) -> int:
        res = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.quantity >= quantity)
            .values(quantity=ProductModel.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def increment_flat(self, product_id: int, quantity: int) -> int:
        res = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(quantity=ProductModel.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def decrement_size(self, product_id: int, size: str, quantity: int) -> int:
        res = self.db.execute(
            update(ProductSizeModel)
            .where(
                ProductSizeModel.product_id == product_id,
                ProductSizeModel.size == size,
                ProductSizeModel.quantity >= quantity,
            )
            .values(quantity=ProductSizeModel.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def increment_size(self, product_id: int, size: str, quantity: int) -> int:
        res = self.db.execute(
            update(ProductSizeModel)
            .where(ProductSizeModel.product_id == product_id, ProductSizeModel.size == size)
            .values(quantity=ProductSizeModel.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def increment_sold(self, product_id: int, quantity: int) -> int:
        res = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(sold=ProductModel.sold + quantity)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount
