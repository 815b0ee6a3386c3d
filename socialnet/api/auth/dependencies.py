from fastapi import Depends, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from socialnet.api.auth.utils import decode_access_token
from socialnet.api.profile.models import User
from socialnet.core.errors import ApiError
from socialnet.core.utils import utcnow
from socialnet.database.database import get_db

# Для получения токена из заголовка Authorization: Bearer <token>
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


async def get_current_user(
        token: str = Depends(oauth2_scheme),
        db: Session = Depends(get_db)
) -> User:
    """
    Получает текущего пользователя из токена.
    Используется как Dependency в эндпоинтах.
    """
    user_id = decode_access_token(token)
    user = db.get(User, user_id) if user_id is not None else None
    if user is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", "Неверные учетные данные")
    return user


async def get_current_active_user(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
) -> User:
    """Проверяет, что пользователь активен, и обновляет время последней активности"""
    if not current_user.is_active:
        raise ApiError(status.HTTP_403_FORBIDDEN, "USER_INACTIVE", "Пользователь неактивен")
    current_user.last_active = utcnow()
    db.commit()
    return current_user
