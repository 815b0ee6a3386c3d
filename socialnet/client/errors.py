from typing import Any, Optional

from pydantic import BaseModel

FRIENDLY_MESSAGES = {
    "SELF_ACTION": "Нельзя отправить заявку самому себе.",
    "USER_NOT_FOUND": "Такого пользователя не существует.",
    "REQUEST_ALREADY_SENT": "Вы уже отправили заявку этому пользователю.",
    "REQUEST_ALREADY_RECEIVED": "Этот пользователь уже отправил вам заявку. Проверьте входящие!",
    "ALREADY_FRIENDS": "Вы уже друзья.",
    "COOLING_PERIOD_ACTIVE": "Подождите, прежде чем отправлять новую заявку.",
    "USER_BLOCKED": "Нельзя отправить заявку этому пользователю.",
    "REQUEST_LIMIT_EXCEEDED": "Слишком много неотвеченных заявок.",
    "RATE_LIMITED": "Слишком много заявок. Попробуйте завтра.",
    "REQUEST_NOT_FOUND": "Заявка не найдена или уже обработана.",
    "FRIENDSHIP_NOT_FOUND": "Дружба не найдена.",
    "BLOCK_NOT_FOUND": "Пользователь не заблокирован.",
    "VALIDATION_ERROR": "Проверьте введённые данные.",
    "NETWORK_ERROR": "Нет связи с сервером.",
    "UNKNOWN_ERROR": "Что-то пошло не так. Попробуйте ещё раз.",
}


def get_friendly_error_message(code: Optional[str]) -> str:
    return FRIENDLY_MESSAGES.get(code or "", FRIENDLY_MESSAGES["UNKNOWN_ERROR"])


class ErrorInfo(BaseModel):
    """Ошибка, сохранённая в состоянии хранилища"""
    message: str
    code: Optional[str] = None


class FriendshipApiError(Exception):
    """Ошибка ответа сервера или транспорта"""

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    @classmethod
    def from_body(cls, status_code: int, body: Any) -> "FriendshipApiError":
        """Разбирает тело ошибки вида {message, code} или {detail: ...}"""
        if isinstance(body, dict):
            detail = body.get("detail", body)
            if isinstance(detail, dict):
                message = detail.get("message") or detail.get("error")
                return cls(message or f"HTTP {status_code}", detail.get("code"), status_code)
            if isinstance(detail, str):
                return cls(detail, None, status_code)
        return cls(f"HTTP {status_code}", None, status_code)

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(message=self.message, code=self.code)
