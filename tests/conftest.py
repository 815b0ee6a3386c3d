import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_KEY", "test-admin-key")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from socialnet.api.auth.utils import create_access_token, get_password_hash
from socialnet.api.friends.limiter import friend_request_limiter
from socialnet.api.profile.models import User
from socialnet.client.api import FriendshipApi
from socialnet.client.store import FriendshipStore
from socialnet.database.database import Base, get_db
from socialnet.main import app

PASSWORD = "Secret123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    friend_request_limiter.reset()
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture
def make_user(db_session, password_hash):
    counter = {"n": 0}

    def factory(username=None, name=None, is_active=True) -> User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            username=username,
            name=name or username.capitalize(),
            email=f"{username}@example.com",
            hashed_password=password_hash,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return factory


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def make_store(anyio_backend):
    apis = []

    def factory(user: User, **kwargs) -> FriendshipStore:
        api = FriendshipApi(
            base_url="http://test",
            token=create_access_token({"sub": str(user.id)}),
            transport=httpx.ASGITransport(app=app),
        )
        apis.append(api)
        return FriendshipStore(api, user.id, **kwargs)

    yield factory
    for api in apis:
        await api.aclose()
