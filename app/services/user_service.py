from sqlalchemy.orm import Session

from app.data.models.user import UserModel
from app.domain.errors import UserNotFound
from app.domain.schemas import AddressOut, UserCreate, UserRead
from app.repos.user_repo import UserRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    """Konta sa zakladane z zewnatrz, tutaj tylko id + nazwa i zapisane adresy."""

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        #idempotentne - ten sam id zwraca istniejacego usera
        user = self.repo.get_user(payload.id)
        if not user:
            user = self.repo.create_user(UserModel(id=payload.id, name=payload.name))
            logger.info(f"User {user.id} created")
        return UserRead.model_validate(user)

    def get_user(self, user_id: int) -> UserRead:
        return UserRead.model_validate(self._require_user(user_id))

    def list_addresses(self, user_id: int) -> list[AddressOut]:
        self._require_user(user_id)
        #najnowsze pierwsze
        addresses = reversed(self.repo.list_addresses(user_id))
        return [AddressOut.model_validate(a) for a in addresses]

    def _require_user(self, user_id: int) -> UserModel:
        user = self.repo.get_user(user_id)
        if not user:
            raise UserNotFound(f"No user for this ID: {user_id}.")
        return user
