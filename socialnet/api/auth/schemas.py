import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class UserRegister(BaseModel):
    model_config = {
        'alias_generator': to_camel,
        'populate_by_name': True
    }

    username: str = Field(..., min_length=3, max_length=50, description="Логин")
    password: str = Field(..., min_length=8, description="Пароль")
    name: str = Field(..., min_length=2, max_length=100, description="Имя")
    email: Optional[str] = Field(None, max_length=255, description="Email")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not re.match(r'^[a-zA-Z0-9_-]+$', v):
            raise ValueError('Имя пользователя: только буквы, цифры, _, -')
        return v.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not re.match(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$', v):
            raise ValueError('Пароль: 1 заглавная, 1 строчная, 1 цифра')
        return v


class UserLogin(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    model_config = {
        'alias_generator': to_camel,
        'populate_by_name': True
    }

    access_token: str
    token_type: str = "bearer"
    user_id: int


class CurrentUser(BaseModel):
    model_config = {
        'from_attributes': True,
        'alias_generator': to_camel,
        'populate_by_name': True
    }

    id: int
    username: str
    name: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    last_active: Optional[datetime] = None
