from sqlalchemy import select
from sqlalchemy.orm import Session
from app.data.models.user import UserModel
from app.data.models.address import AddressModel

class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def create_user(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def list_addresses(self, user_id: int) -> list[AddressModel]:
        return list(
            self.db.execute(
                select(AddressModel)
                .where(AddressModel.user_id == user_id)
                .order_by(AddressModel.id)
            ).scalars().all()
        )

    def find_address(self, user_id: int, fields: dict) -> AddressModel | None:
        return self.db.execute(
            select(AddressModel).filter_by(user_id=user_id, **fields).limit(1)
        ).scalar_one_or_none()

    def add_address(self, address: AddressModel) -> AddressModel:
        self.db.add(address)
        self.db.flush()
        return address

    def delete_address(self, address: AddressModel) -> None:
        self.db.delete(address)
        self.db.flush()
