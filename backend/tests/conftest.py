import os
import tempfile
from types import SimpleNamespace

# must be in place before the app modules read their configuration
os.environ["JWT_SECRET"] = "test-secret-key-for-unit-tests"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="collabtodo-media-")
os.environ["GOOGLE_CLIENT_ID"] = "test-client.apps.googleusercontent.com"
os.environ.pop("S3_BUCKET_NAME", None)

import pytest
from fastapi.testclient import TestClient

from collabtodo.database import Base, SessionLocal, engine
from collabtodo.main import app

PASSWORD = "Abcdef1!"


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def signup(client):
    """Register and log in a user, returning its id, token and auth headers."""
    def _signup(email, name=None, password=PASSWORD):
        resp = client.post(
            "/api/users/register",
            json={"email": email, "password": password, "name": name or email.split("@")[0].title()},
        )
        assert resp.status_code == 201, resp.text
        resp = client.post("/api/users/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return SimpleNamespace(
            id=body["user"]["id"],
            user=body["user"],
            token=body["token"],
            headers={"Authorization": f"Bearer {body['token']}"},
        )
    return _signup


@pytest.fixture
def alice(signup):
    return signup("alice@example.com", "Alice")


@pytest.fixture
def bob(signup):
    return signup("bob@example.com", "Bob")


@pytest.fixture
def carol(signup):
    return signup("carol@example.com", "Carol")


@pytest.fixture
def make_todo(client):
    def _make(owner, title="Buy milk"):
        resp = client.post("/api/todos", json={"title": title}, headers=owner.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make
