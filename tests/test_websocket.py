import pytest

from socialnet.websocket import websocket_manager as ws


@pytest.fixture(autouse=True)
def clean_connections():
    ws.user_connections.clear()
    ws.online_users.clear()
    yield
    ws.user_connections.clear()
    ws.online_users.clear()


def test_online_tracking_by_sessions():
    assert ws.register_connection(1, "a")
    assert not ws.register_connection(1, "b")
    ws.register_connection(2, "c")

    assert ws.get_online_friends([3, 2, 1]) == [1, 2]
    assert ws.get_connection_stats() == {"total_connections": 3, "online_users": 2}

    assert ws.unregister_connection("a") == 1
    assert ws.is_user_online(1)
    assert ws.unregister_connection("b") == 1
    assert not ws.is_user_online(1)
    assert ws.unregister_connection("missing") is None


@pytest.mark.anyio
async def test_broadcast_reaches_online_friends_only(anyio_backend, monkeypatch):
    sent = []

    async def fake_send(user_id, event, data):
        sent.append((user_id, event, data))

    monkeypatch.setattr(ws, "load_friend_ids", lambda user_id: {2, 3})
    monkeypatch.setattr(ws, "send_to_user", fake_send)
    ws.register_connection(3, "s3")

    await ws.broadcast_online_status(1, True)

    assert sent == [(3, "user_online_status", {"user_id": 1, "is_online": True})]


def test_health(client):
    body = client.get("/api/health").json()

    assert body["status"] == "healthy"
    assert body["realtime"] == {"total_connections": 0, "online_users": 0}
