from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from socialnet.api.auth.dependencies import get_current_active_user
from socialnet.api.auth.schemas import Token, UserRegister, UserLogin, CurrentUser
from socialnet.api.auth.service import AuthService
from socialnet.api.profile.models import User
from socialnet.core.errors import ApiError
from socialnet.database.database import get_db

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db: Session = Depends(get_db)):
    service = AuthService(db)
    user = service.register_user(user_data)
    return service.issue_token(user)


@router.post("/login", response_model=Token)
async def login(credentials: UserLogin, db: Session = Depends(get_db)):
    service = AuthService(db)
    user = service.authenticate_user(credentials.username, credentials.password)
    if not user:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", "Неверный логин или пароль")
    return service.issue_token(user)


@router.get("/me", response_model=CurrentUser)
async def me(current_user: User = Depends(get_current_active_user)):
    return current_user
