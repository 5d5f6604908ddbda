import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db, User
from auth import hash_password
from main import app


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


class RecordingDispatcher:
    def __init__(self, succeed=True, raises=False):
        self.succeed = succeed
        self.raises = raises
        self.calls = []

    async def __call__(self, destination, body):
        self.calls.append((destination, body))
        if self.raises:
            raise RuntimeError("provider down")
        return self.succeed


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def dispatcher_factory():
    return RecordingDispatcher


@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(succeed=False)


@pytest.fixture
def alice(session_factory):
    with session_factory() as db:
        user = User(
            name="Alice", email="alice@example.com", password_hash=hash_password("secret")
        )
        db.add(user)
        db.commit()
        return user.id


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    response = client.post(
        "/auth/register",
        json={"name": "Bob", "email": "bob@example.com", "password": "hunter2"},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
