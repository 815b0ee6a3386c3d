from tests.conftest import PASSWORD, auth


def test_register_and_login(client):
    response = client.post("/api/auth/register", json={
        "username": "Alice", "password": PASSWORD, "name": "Alice", "email": "alice@example.com",
    })
    assert response.status_code == 201
    token = response.json()["accessToken"]
    assert response.json()["tokenType"] == "bearer"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["username"] == "alice"
    assert me["lastActive"] is not None

    login = client.post("/api/auth/login", json={"username": "ALICE", "password": PASSWORD})
    assert login.status_code == 200
    assert login.json()["userId"] == me["id"]


def test_register_conflicts(client, make_user):
    make_user("alice")

    response = client.post("/api/auth/register", json={"username": "alice", "password": PASSWORD, "name": "Al"})
    assert response.status_code == 400
    assert response.json()["code"] == "USERNAME_TAKEN"

    response = client.post("/api/auth/register", json={
        "username": "alice2", "password": PASSWORD, "name": "Al", "email": "alice@example.com",
    })
    assert response.json()["code"] == "EMAIL_TAKEN"


def test_weak_password(client):
    response = client.post("/api/auth/register", json={"username": "bob", "password": "password", "name": "Bob"})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_bad_credentials(client, make_user):
    make_user("alice")

    response = client.post("/api/auth/login", json={"username": "alice", "password": "Wrong1234"})

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"


def test_inactive_user(client, make_user):
    ghost = make_user("ghost", is_active=False)

    assert client.get("/api/auth/me", headers=auth(ghost)).json()["code"] == "USER_INACTIVE"
    login = client.post("/api/auth/login", json={"username": "ghost", "password": PASSWORD})
    assert login.status_code == 403
