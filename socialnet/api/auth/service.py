import logging
from typing import Optional

from sqlalchemy.orm import Session

from socialnet.api.auth.schemas import UserRegister
from socialnet.api.auth.utils import get_password_hash, create_access_token, verify_password
from socialnet.api.profile.models import User
from socialnet.core.errors import ApiError

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister) -> User:
        if self._get_user_by_username(user_data.username) is not None:
            raise ApiError(400, "USERNAME_TAKEN", "Пользователь с таким именем уже существует")
        if user_data.email and self.db.query(User).filter(User.email == user_data.email).first():
            raise ApiError(400, "EMAIL_TAKEN", "Email уже используется")

        user = User(
            username=user_data.username,
            name=user_data.name,
            email=user_data.email,
            hashed_password=get_password_hash(user_data.password)
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Зарегистрирован пользователь %s (id=%s)", user.username, user.id)
        return user

    def authenticate_user(self, username: str, password: str) -> Optional[User]:
        user = self._get_user_by_username(username.lower())
        if not user or not verify_password(password, user.hashed_password):
            return None
        if not user.is_active:
            raise ApiError(403, "USER_INACTIVE", "Аккаунт деактивирован")
        return user

    @staticmethod
    def issue_token(user: User) -> dict:
        return {
            "access_token": create_access_token({"sub": str(user.id)}),
            "token_type": "bearer",
            "user_id": user.id,
        }

    def _get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()
