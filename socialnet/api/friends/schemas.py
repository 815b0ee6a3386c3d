from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

CAMEL_CONFIG = {
    "from_attributes": True,
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class FriendshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class FriendshipTier(str, Enum):
    CLOSE_FRIENDS = "close_friends"
    ACQUAINTANCES = "acquaintances"
    FAMILY = "family"
    WORK = "work"
    CUSTOM = "custom"


class Direction(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


class RelationStatus(str, Enum):
    """Статус отношений с конкретным пользователем"""
    NONE = "none"
    SELF = "self"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class FriendRequestCreate(BaseModel):
    model_config = CAMEL_CONFIG

    friend_id: int = Field(..., gt=0, description="ID пользователя")


class TierUpdate(BaseModel):
    model_config = CAMEL_CONFIG

    tier: FriendshipTier
    custom_label: Optional[str] = Field(None, max_length=50, description="Своё название (только для custom)")

    @model_validator(mode="after")
    def drop_label_for_builtin_tier(self):
        if self.tier != FriendshipTier.CUSTOM:
            self.custom_label = None
        elif self.custom_label is not None:
            self.custom_label = self.custom_label.strip() or None
        return self


class UserShort(BaseModel):
    """Краткая информация о пользователе."""
    model_config = CAMEL_CONFIG

    id: int = Field(gt=0)
    username: str = Field(min_length=1)
    name: str = Field(min_length=1)
    avatar_url: Optional[str] = None
    last_active: Optional[datetime] = None


class FriendshipOut(BaseModel):
    """
    Запись дружбы глазами конкретного пользователя:
    direction и counterpart считаются относительно него.
    """
    model_config = CAMEL_CONFIG

    id: int = Field(gt=0)
    user_id: int
    friend_id: int
    status: FriendshipStatus
    tier: FriendshipTier = FriendshipTier.ACQUAINTANCES
    custom_tier_label: Optional[str] = None
    action_user_id: Optional[int] = None
    accepted_at: Optional[datetime] = None
    cooling_period: Optional[datetime] = None
    request_count: int = 1
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    direction: Optional[Direction] = None
    counterpart: Optional[UserShort] = None


class Pagination(BaseModel):
    model_config = CAMEL_CONFIG

    current_page: int = Field(1, ge=1)
    total_pages: int = Field(1, ge=1)
    total_items: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.current_page > self.total_pages:
            raise ValueError("current_page не может превышать total_pages")
        return self


class FriendshipPage(BaseModel):
    model_config = CAMEL_CONFIG

    data: List[FriendshipOut] = []
    pagination: Pagination = Field(default_factory=Pagination)


class UserPage(BaseModel):
    model_config = CAMEL_CONFIG

    data: List[UserShort] = []
    pagination: Pagination = Field(default_factory=Pagination)


class Suggestion(UserShort):
    mutual_count: int = Field(0, ge=0)


class SuggestionList(BaseModel):
    model_config = CAMEL_CONFIG

    data: List[Suggestion] = []


class FriendshipAction(BaseModel):
    model_config = CAMEL_CONFIG

    message: str
    friendship: Optional[FriendshipOut] = None


class MessageResponse(BaseModel):
    message: str


class FriendshipStatusOut(BaseModel):
    model_config = CAMEL_CONFIG

    status: RelationStatus
    direction: Optional[Direction] = None
    friendship: Optional[FriendshipOut] = None


class CleanupResult(BaseModel):
    message: str
    count: int = Field(ge=0)
