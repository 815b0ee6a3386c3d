import logging
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from socialnet.api.friends.schemas import (
    CleanupResult,
    FriendshipAction,
    FriendshipPage,
    FriendshipStatusOut,
    FriendshipTier,
    MessageResponse,
    SuggestionList,
    UserPage,
)
from socialnet.client.errors import FriendshipApiError
from socialnet.core.config import settings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class FriendshipApi:
    """
    Асинхронный HTTP-клиент REST API дружбы.

    Каждый метод соответствует одному маршруту /api/friendships,
    ответ проверяется pydantic-схемой. Любая ошибка (HTTP, сеть,
    неожиданная форма ответа) поднимается как FriendshipApiError.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout or settings.CLIENT_TIMEOUT_SECONDS,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        if token:
            self.set_token(token)

    async def __aenter__(self) -> "FriendshipApi":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    def set_token(self, token: str):
        self._client.headers["Authorization"] = f"Bearer {token}"

    # ═══════════════════════════════════════════
    # ЗАЯВКИ
    # ═══════════════════════════════════════════

    async def send_request(self, friend_id: int) -> FriendshipAction:
        return await self._call(FriendshipAction, "POST", "/api/friendships/requests", json={"friendId": friend_id})

    async def cancel_request(self, friendship_id: int) -> FriendshipAction:
        return await self._call(FriendshipAction, "DELETE", f"/api/friendships/requests/{friendship_id}")

    async def accept_request(self, friendship_id: int) -> FriendshipAction:
        return await self._call(FriendshipAction, "PUT", f"/api/friendships/requests/{friendship_id}/accept")

    async def reject_request(self, friendship_id: int) -> FriendshipAction:
        return await self._call(FriendshipAction, "PUT", f"/api/friendships/requests/{friendship_id}/reject")

    async def get_pending_requests(self, page: int = 1, size: Optional[int] = None) -> FriendshipPage:
        return await self._call(FriendshipPage, "GET", "/api/friendships/requests/pending",
                                params=self._page_params(page, size))

    async def get_sent_requests(self, page: int = 1, size: Optional[int] = None) -> FriendshipPage:
        return await self._call(FriendshipPage, "GET", "/api/friendships/requests/sent",
                                params=self._page_params(page, size))

    # ═══════════════════════════════════════════
    # ДРУЗЬЯ
    # ═══════════════════════════════════════════

    async def get_friends(self, user_id: int, page: int = 1, size: Optional[int] = None) -> FriendshipPage:
        return await self._call(FriendshipPage, "GET", f"/api/friendships/{user_id}/friends",
                                params=self._page_params(page, size))

    async def get_mutual_friends(self, user_id: int, page: int = 1, size: Optional[int] = None) -> UserPage:
        return await self._call(UserPage, "GET", f"/api/friendships/{user_id}/mutual-friends",
                                params=self._page_params(page, size))

    async def get_friends_by_tier(self, tier: FriendshipTier, page: int = 1,
                                  size: Optional[int] = None) -> FriendshipPage:
        return await self._call(FriendshipPage, "GET", f"/api/friendships/tiers/{FriendshipTier(tier).value}",
                                params=self._page_params(page, size))

    async def update_tier(self, friendship_id: int, tier: FriendshipTier,
                          custom_label: Optional[str] = None) -> FriendshipAction:
        body = {"tier": FriendshipTier(tier).value, "customLabel": custom_label}
        return await self._call(FriendshipAction, "PUT", f"/api/friendships/{friendship_id}/tier", json=body)

    async def remove_friend(self, friendship_id: int) -> FriendshipAction:
        return await self._call(FriendshipAction, "DELETE", f"/api/friendships/{friendship_id}")

    async def get_suggestions(self) -> SuggestionList:
        return await self._call(SuggestionList, "GET", "/api/friendships/suggestions")

    # ═══════════════════════════════════════════
    # БЛОКИРОВКА, СТАТУС, ОБСЛУЖИВАНИЕ
    # ═══════════════════════════════════════════

    async def block_user(self, user_id: int) -> FriendshipAction:
        return await self._call(FriendshipAction, "POST", "/api/friendships/block", json={"friendId": user_id})

    async def unblock_user(self, user_id: int) -> MessageResponse:
        return await self._call(MessageResponse, "DELETE", f"/api/friendships/block/{user_id}")

    async def check_status(self, user_id: int) -> FriendshipStatusOut:
        return await self._call(FriendshipStatusOut, "GET", f"/api/friendships/status/{user_id}")

    async def cleanup_expired_requests(self, admin_key: str) -> CleanupResult:
        return await self._call(CleanupResult, "POST", "/api/friendships/cleanup",
                                headers={"X-Admin-Key": admin_key})

    # ═══════════════════════════════════════════
    # ВСПОМОГАТЕЛЬНЫЕ
    # ═══════════════════════════════════════════

    @staticmethod
    def _page_params(page: int, size: Optional[int]) -> Dict[str, int]:
        params = {"page": page}
        if size is not None:
            params["size"] = size
        return params

    async def _call(self, model: Type[ModelT], method: str, path: str, **kwargs) -> ModelT:
        body = await self._request(method, path, **kwargs)
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            logger.warning("%s %s: неожиданный ответ сервера", method, path)
            raise FriendshipApiError("Некорректный ответ сервера", "INVALID_RESPONSE") from exc

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s: ошибка сети: %s", method, path, exc)
            raise FriendshipApiError(str(exc) or "Ошибка сети", "NETWORK_ERROR") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            error = FriendshipApiError.from_body(response.status_code, body)
            logger.warning("%s %s: %s %s", method, path, response.status_code, error.code)
            raise error
        return body
