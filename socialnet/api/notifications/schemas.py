from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from socialnet.api.friends.schemas import CAMEL_CONFIG, Pagination


class NotificationType(str, Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    FRIEND_REJECTED = "friend_rejected"


class NotificationItem(BaseModel):
    model_config = CAMEL_CONFIG

    id: int = Field(..., description="Уникальный ID уведомления", examples=[1])
    type: NotificationType = Field(..., description="Тип уведомления", examples=["friend_request"])
    title: str = Field(..., max_length=100, examples=["Новая заявка в друзья"])
    message: str = Field(..., max_length=500, examples=["Иван хочет добавить вас в друзья"])
    sender_id: Optional[int] = Field(None, description="ID отправителя", examples=[42])
    sender_name: Optional[str] = None
    sender_avatar: Optional[str] = None
    friendship_id: Optional[int] = Field(None, description="ID связанной заявки")
    is_read: bool = False
    created_at: datetime


class NotificationPage(BaseModel):
    model_config = CAMEL_CONFIG

    data: List[NotificationItem] = []
    pagination: Pagination = Field(default_factory=Pagination)


class CountResponse(BaseModel):
    count: int = Field(0, ge=0)
