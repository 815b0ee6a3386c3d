from tests.conftest import auth

BASE = "/api/notifications"


def send(client, sender, receiver) -> int:
    response = client.post("/api/friendships/requests", json={"friendId": receiver.id}, headers=auth(sender))
    return response.json()["friendship"]["id"]


def test_friend_request_notifications(client, make_user):
    alice, bob = make_user("alice", name="Alice"), make_user("bob", name="Bob")
    friendship_id = send(client, alice, bob)

    body = client.get(BASE, headers=auth(bob)).json()
    assert body["pagination"]["totalItems"] == 1
    item = body["data"][0]
    assert item["type"] == "friend_request"
    assert item["senderId"] == alice.id
    assert item["friendshipId"] == friendship_id
    assert "Alice" in item["message"]
    assert client.get(f"{BASE}/unread-count", headers=auth(bob)).json() == {"count": 1}
    assert client.get(f"{BASE}/unread-friends-count", headers=auth(bob)).json() == {"count": 1}

    client.put(f"/api/friendships/requests/{friendship_id}/accept", headers=auth(bob))
    accepted = client.get(BASE, headers=auth(alice)).json()["data"]
    assert [item["type"] for item in accepted] == ["friend_accepted"]
    assert client.get(f"{BASE}/unread-friends-count", headers=auth(bob)).json() == {"count": 0}


def test_cancelled_request_drops_notification(client, make_user):
    alice, bob = make_user("alice"), make_user("bob")
    friendship_id = send(client, alice, bob)

    client.delete(f"/api/friendships/requests/{friendship_id}", headers=auth(alice))

    assert client.get(BASE, headers=auth(bob)).json()["data"] == []
    assert client.get(f"{BASE}/unread-count", headers=auth(bob)).json() == {"count": 0}


def test_mark_read(client, make_user):
    alice, bob, carol = make_user("alice"), make_user("bob"), make_user("carol")
    send(client, alice, bob)
    send(client, carol, bob)
    first, second = client.get(BASE, headers=auth(bob)).json()["data"]

    marked = client.put(f"{BASE}/{first['id']}/read", headers=auth(bob)).json()
    assert marked["isRead"] is True
    assert client.get(f"{BASE}/unread-count", headers=auth(bob)).json() == {"count": 1}
    unread = client.get(BASE, params={"unreadOnly": True}, headers=auth(bob)).json()["data"]
    assert [item["id"] for item in unread] == [second["id"]]

    foreign = client.put(f"{BASE}/{second['id']}/read", headers=auth(alice))
    assert foreign.status_code == 404
    assert foreign.json()["code"] == "NOTIFICATION_NOT_FOUND"

    assert client.put(f"{BASE}/read-all", headers=auth(bob)).json() == {"count": 1}
    assert client.get(f"{BASE}/unread-count", headers=auth(bob)).json() == {"count": 0}


def test_notifications_paginated(client, make_user):
    target = make_user("target")
    for _ in range(3):
        send(client, make_user(), target)

    body = client.get(BASE, params={"page": 2, "size": 2}, headers=auth(target)).json()

    assert body["pagination"] == {"currentPage": 2, "totalPages": 2, "totalItems": 3}
    assert len(body["data"]) == 1
