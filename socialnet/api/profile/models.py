from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func

from socialnet.database.database import Base


class User(Base):
    """
    Таблица пользователей
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=True)
    hashed_password = Column(String(255), nullable=False)

    avatar_url = Column(String(255), default="/static/images/avatar.webp")

    last_active = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    is_active = Column(Boolean, default=True)
