from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from socialnet.api.auth.dependencies import get_current_active_user
from socialnet.api.auth.utils import verify_admin_key
from socialnet.api.friends.limiter import limit_friend_requests
from socialnet.api.friends.schemas import (
    CleanupResult,
    FriendRequestCreate,
    FriendshipAction,
    FriendshipPage,
    FriendshipStatusOut,
    FriendshipTier,
    MessageResponse,
    SuggestionList,
    TierUpdate,
    UserPage,
)
from socialnet.api.friends.service import FriendshipService
from socialnet.api.profile.models import User
from socialnet.core.config import settings
from socialnet.core.errors import ApiError
from socialnet.database.database import get_db

router = APIRouter(prefix="/api/friendships", tags=["friendships"])


def get_friendship_service(db: Session = Depends(get_db)) -> FriendshipService:
    return FriendshipService(db)


def page_params(
        page: int = Query(1, ge=1),
        size: int = Query(settings.FRIENDS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> dict:
    return {"page": page, "size": size}


# ═══════════════════════════════════════════
# ЗАЯВКИ
# ═══════════════════════════════════════════

@router.post("/requests", response_model=FriendshipAction, status_code=status.HTTP_201_CREATED)
async def send_request(
        data: FriendRequestCreate,
        current_user: User = Depends(limit_friend_requests),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    friendship, created = await friendship_service.send_request(data.friend_id, current_user)
    message = "Заявка в друзья отправлена" if created else "Заявка в друзья отправлена повторно"
    return {"message": message, "friendship": friendship}


@router.get("/requests/pending", response_model=FriendshipPage)
async def get_pending_requests(
        paging: dict = Depends(page_params),
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    return friendship_service.get_pending_requests(current_user, **paging)


@router.get("/requests/sent", response_model=FriendshipPage)
async def get_sent_requests(
        paging: dict = Depends(page_params),
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    return friendship_service.get_sent_requests(current_user, **paging)


@router.put("/requests/{friendship_id}/accept", response_model=FriendshipAction)
async def accept_request(
        friendship_id: int,
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    friendship = await friendship_service.accept_request(friendship_id, current_user)
    return {"message": "Заявка принята", "friendship": friendship}


@router.put("/requests/{friendship_id}/reject", response_model=FriendshipAction)
async def reject_request(
        friendship_id: int,
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    friendship = await friendship_service.reject_request(friendship_id, current_user)
    return {"message": "Заявка отклонена", "friendship": friendship}


@router.delete("/requests/{friendship_id}", response_model=FriendshipAction)
async def cancel_request(
        friendship_id: int,
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    friendship = await friendship_service.cancel_request(friendship_id, current_user)
    return {"message": "Заявка отменена", "friendship": friendship}


# ═══════════════════════════════════════════
# БЛОКИРОВКА
# ═══════════════════════════════════════════

@router.post("/block", response_model=FriendshipAction)
async def block_user(
        data: FriendRequestCreate,
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    friendship = friendship_service.block_user(data.friend_id, current_user)
    return {"message": "Пользователь заблокирован", "friendship": friendship}


@router.delete("/block/{user_id}", response_model=MessageResponse)
async def unblock_user(
        user_id: int,
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    friendship_service.unblock_user(user_id, current_user)
    return {"message": "Пользователь разблокирован"}


# ═══════════════════════════════════════════
# СТАТУС, ПОДСКАЗКИ, ОБСЛУЖИВАНИЕ
# ═══════════════════════════════════════════

@router.get("/status/{user_id}", response_model=FriendshipStatusOut)
async def check_friendship_status(
        user_id: int,
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    return friendship_service.check_status(user_id, current_user)


@router.get("/suggestions", response_model=SuggestionList)
async def get_suggestions(
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    return {"data": friendship_service.get_suggestions(current_user)}


@router.get("/tiers/{tier}", response_model=FriendshipPage)
async def get_friends_by_tier(
        tier: FriendshipTier,
        paging: dict = Depends(page_params),
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    return friendship_service.get_friends_by_tier(current_user, tier, **paging)


@router.post("/cleanup", response_model=CleanupResult)
async def cleanup_expired_requests(
        x_admin_key: Optional[str] = Header(None),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    if not verify_admin_key(x_admin_key):
        raise ApiError(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Неверный ключ администратора")
    count = friendship_service.cleanup_expired_requests()
    return {"message": f"Удалено просроченных заявок: {count}", "count": count}


# ═══════════════════════════════════════════
# ДРУЗЬЯ
# ═══════════════════════════════════════════

@router.get("/{user_id}/friends", response_model=FriendshipPage)
async def get_friends(
        user_id: int,
        paging: dict = Depends(page_params),
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    return friendship_service.get_friends(user_id, **paging)


@router.get("/{user_id}/mutual-friends", response_model=UserPage)
async def get_mutual_friends(
        user_id: int,
        paging: dict = Depends(page_params),
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    return friendship_service.get_mutual_friends(user_id, current_user, **paging)


@router.put("/{friendship_id}/tier", response_model=FriendshipAction)
async def update_tier(
        friendship_id: int,
        data: TierUpdate,
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    friendship = friendship_service.update_tier(friendship_id, data, current_user)
    return {"message": "Категория обновлена", "friendship": friendship}


@router.delete("/{friendship_id}", response_model=FriendshipAction)
async def remove_friend(
        friendship_id: int,
        current_user: User = Depends(get_current_active_user),
        friendship_service: FriendshipService = Depends(get_friendship_service)
):
    friendship = await friendship_service.remove_friend(friendship_id, current_user)
    return {"message": "Друг удалён", "friendship": friendship}
