from sqlalchemy.orm import Session

from app.data.models.user import UserModel
from app.domain.errors import InvalidInput, NotFound
from app.domain.schemas import UserCreate, UserRead
from app.repos.user_repo import UserRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    """Rejestr klientow, do ktorych przypisywane sa zamowienia i recenzje."""

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        # ponowne utworzenie tego samego id zwraca istniejacego usera
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        if payload.email and self.repo.get_by_email(payload.email):
            raise InvalidInput("The email has already been taken.")

        created = self.repo.create_user(UserModel(id=payload.id, name=payload.name, email=payload.email))
        logger.info(f"User {created.id} registered")
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound("User not found.")
        return UserRead.model_validate(user)
