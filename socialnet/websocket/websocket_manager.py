import logging
import time
from typing import Dict, Iterable, List, Optional, Set

import socketio
from sqlalchemy import or_

from socialnet.api.auth.utils import decode_access_token
from socialnet.api.friends.models import Friendship
from socialnet.core.config import settings
from socialnet.database.database import SessionLocal

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════
# SOCKETIO SERVER
# ═══════════════════════════════════════════
sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins=settings.CORS_ORIGINS,
    logger=settings.DEBUG,
    engineio_logger=settings.DEBUG,
)

# user_id -> ID сессий
user_connections: Dict[int, Set[str]] = {}

# user_id -> время подключения первой сессии
online_users: Dict[int, float] = {}


# ═══════════════════════════════════════════
# SOCKET EVENTS
# ═══════════════════════════════════════════

@sio.event
async def connect(sid, environ, auth):
    """Подключение клиента, токен передаётся в auth={'token': ...}"""
    token = auth.get('token') if auth else None
    user_id = decode_access_token(token) if token else None
    if user_id is None:
        logger.warning("Отклонено подключение %s: нет валидного токена", sid)
        return False

    await sio.save_session(sid, {'user_id': user_id})
    came_online = register_connection(user_id, sid)
    logger.info("Пользователь %s подключён (session: %s)", user_id, sid)
    if came_online:
        await broadcast_online_status(user_id, True)
    return True


@sio.event
async def disconnect(sid):
    user_id = unregister_connection(sid)
    if user_id is None:
        logger.warning("Отключение неизвестной сессии: %s", sid)
        return
    logger.info("Пользователь %s отключён (session: %s)", user_id, sid)
    if not is_user_online(user_id):
        await broadcast_online_status(user_id, False)


@sio.event
async def online_friends(sid, data=None):
    """Ответ на запрос клиента: ID друзей, которые сейчас онлайн"""
    session = await sio.get_session(sid)
    return get_online_friends(load_friend_ids(session['user_id']))


# ═══════════════════════════════════════════
# ONLINE STATUS
# ═══════════════════════════════════════════

def register_connection(user_id: int, sid: str) -> bool:
    """Добавляет сессию; True, если пользователь только что появился онлайн"""
    sessions = user_connections.setdefault(user_id, set())
    first = not sessions
    sessions.add(sid)
    if first:
        online_users[user_id] = time.time()
    return first


def unregister_connection(sid: str) -> Optional[int]:
    """Удаляет сессию, возвращает ID её владельца"""
    for uid, sessions in list(user_connections.items()):
        if sid in sessions:
            sessions.discard(sid)
            if not sessions:
                del user_connections[uid]
                online_users.pop(uid, None)
            return uid
    return None


def is_user_online(user_id: int) -> bool:
    return user_id in online_users


def get_online_friends(friend_ids: Iterable[int]) -> List[int]:
    return sorted(fid for fid in friend_ids if fid in online_users)


def get_connection_stats() -> Dict[str, int]:
    return {
        "total_connections": sum(len(sessions) for sessions in user_connections.values()),
        "online_users": len(online_users),
    }


def load_friend_ids(user_id: int) -> Set[int]:
    db = SessionLocal()
    try:
        rows = db.query(Friendship.user_id, Friendship.friend_id).filter(
            Friendship.status == "accepted",
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        ).all()
    finally:
        db.close()
    return {friend_id if uid == user_id else uid for uid, friend_id in rows}


async def broadcast_online_status(user_id: int, is_online: bool):
    """Сообщает онлайн-друзьям пользователя о смене его статуса"""
    targets = get_online_friends(load_friend_ids(user_id))
    for friend_id in targets:
        await send_to_user(friend_id, 'user_online_status', {'user_id': user_id, 'is_online': is_online})
    logger.debug("Статус %s (%s) разослан %s друзьям", user_id, is_online, len(targets))


# ═══════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════

async def send_to_user(user_id: int, event: str, data: dict):
    """Отправить событие всем сессиям пользователя, ошибки доставки только логируются"""
    for session_id in list(user_connections.get(user_id, ())):
        try:
            await sio.emit(event, data, room=session_id)
        except Exception:
            logger.warning("Ошибка отправки %s пользователю %s", event, user_id, exc_info=True)


async def send_notification_to_user(user_id: int, notification_data: dict):
    await send_to_user(user_id, 'notification', notification_data)
